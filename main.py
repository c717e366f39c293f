import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from clients.claude_client import ClaudeClient
from clients.grok_client import GrokClient
from clients.llm_gateway import GatewayClient
from clients.perplexity_client import PerplexityClient
from clients.supabase_client import create_supabase
from routes import admin_routes, content_routes
from services.admin_service import AdminService
from services.authoring_service import AuthoringService
from services.content_store import ContentStore
from utils.exceptions import RefineryError
from utils.settings import AppSettings, load_settings

# Configure logging
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)


def create_app(
    settings: Optional[AppSettings] = None,
    store: Optional[ContentStore] = None,
    claude: Optional[GatewayClient] = None,
    grok: Optional[GatewayClient] = None,
    perplexity: Optional[PerplexityClient] = None,
) -> FastAPI:
    """
    Build the API. Anything not passed in is built from settings at startup,
    so tests can hand in fakes for the store and the providers.
    """
    app_settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.getLogger().setLevel(app_settings.log_level)

        app.state.settings = app_settings
        app.state.store = store or ContentStore(
            create_supabase(app_settings.supabase_url, app_settings.supabase_key)
        )
        app.state.claude = claude or ClaudeClient(app_settings.claude)
        app.state.grok = grok or GrokClient(app_settings.grok)
        app.state.perplexity = perplexity or PerplexityClient(app_settings.perplexity)

        app.state.authoring_service = AuthoringService(
            app.state.store, app.state.claude, app.state.grok, app.state.perplexity
        )
        app.state.admin_service = AdminService(
            app.state.store, [app.state.claude, app.state.grok, app.state.perplexity]
        )
        logger.info("Content Refinery started")
        try:
            yield
        finally:
            for client in (app.state.claude, app.state.grok, app.state.perplexity):
                await client.aclose()

    app = FastAPI(title="Content Refinery", lifespan=lifespan)

    @app.exception_handler(RefineryError)
    async def refinery_exception_handler(request: Request, exc: RefineryError):
        if exc.status_code >= 500:
            logger.error(f"{request.url.path} failed: {exc.error_code} - {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "code": "INVALID_PARAMETERS", "details": {"errors": errors}},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal error", "code": "INTERNAL_ERROR"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(content_routes.router)
    app.include_router(admin_routes.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
