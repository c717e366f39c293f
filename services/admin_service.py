"""
Admin maintenance: invalid-content cleanup and the system audit.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List

from clients.llm_gateway import GatewayClient
from models.content_models import ContentType
from services.content_store import ContentStore, is_valid_document
from utils.exceptions import RefineryError, ValidationError

logger = logging.getLogger(__name__)

CLEANUP_SCOPES = {
    "all": [ContentType.BOOK, ContentType.COURSE],
    "books": [ContentType.BOOK],
    "courses": [ContentType.COURSE],
}

ORCHESTRATION_INFO = {
    "strategy": "Sequential with fallback",
    "order": ["Perplexity (Research)", "Grok (Trends)", "Claude (Generation)"],
    "conflicts": "None - Each AI serves distinct purpose",
    "override": "Claude has final authority on content structure and quality",
}


class AdminService:
    def __init__(self, store: ContentStore, providers: List[GatewayClient]):
        self.store = store
        self.providers = providers

    async def cleanup_invalid_content(self, content_type: str = "all", dry_run: bool = True) -> Dict[str, Any]:
        """
        Find (and unless dry_run, delete) documents with no title, topic or
        chapters/modules. Protected documents are reported, never deleted.
        """
        scope = CLEANUP_SCOPES.get((content_type or "all").lower())
        if scope is None:
            raise ValidationError(
                f"Invalid contentType: {content_type}. Expected 'all', 'books' or 'courses'",
                error_code="INVALID_CONTENT_TYPE",
            )
        logger.info(f"Starting cleanup - Type: {content_type}, Dry run: {dry_run}")

        results: Dict[str, Dict[str, Any]] = {}
        for kind in scope:
            rows = await self.store.list(kind, include_invalid=True)
            invalid = [row for row in rows if not is_valid_document(kind, row)]
            summary = {
                "found": len(invalid),
                "deleted": 0,
                "ids": [{"id": row.get("id"), "title": row.get("title") or "No title"} for row in invalid],
                "protected": [row.get("id") for row in invalid if row.get("protected")],
                "failed": [],
            }

            if not dry_run:
                for row in invalid:
                    if row.get("protected"):
                        logger.info(f"Skipping protected {kind.value} {row.get('id')}")
                        continue
                    try:
                        await self.store.delete(kind, row["id"])
                    except RefineryError as e:
                        logger.error(f"Failed to delete {kind.value} {row.get('id')}: {e.message}")
                        summary["failed"].append({"id": row.get("id"), "error": e.message})
                        continue
                    summary["deleted"] += 1
                    logger.info(f"Deleted invalid {kind.value}: {row.get('id')}")

            results[kind.table] = summary

        if dry_run:
            message = "Dry run complete - no data deleted. Set dryRun=false to delete."
        else:
            message = (
                f"Cleanup complete - deleted {results.get('books', {}).get('deleted', 0)} books "
                f"and {results.get('courses', {}).get('deleted', 0)} courses"
            )
        return {"success": True, "dryRun": dry_run, "results": results, "message": message}

    async def system_audit(self) -> Dict[str, Any]:
        """Provider keys and live pings, invalid-row scan, orchestration summary."""
        logger.info("Starting system audit...")
        issues: List[str] = []
        recommendations: List[str] = []
        ai_services: Dict[str, Dict[str, Any]] = {}

        for client in self.providers:
            key_env = client.settings.api_key_env
            ai_services[key_env] = {
                "configured": client.configured,
                "status": "OK" if client.configured else "MISSING",
            }
            if not client.configured:
                issues.append(f"Missing API key: {key_env}")

        live = [client for client in self.providers if client.configured]
        pings = await asyncio.gather(*(client.ping() for client in live))
        for client, response in zip(live, pings):
            entry = ai_services[client.settings.api_key_env]
            entry["apiStatus"] = "WORKING" if response.ok else "FAILED"
            if not response.ok:
                issues.append(f"{client.provider_name.capitalize()} API test failed: {response.error_message}")

        database: Dict[str, Dict[str, Any]] = {}
        for kind in (ContentType.BOOK, ContentType.COURSE):
            rows = await self.store.list(kind, include_invalid=True)
            invalid_ids = [row.get("id") for row in rows if not is_valid_document(kind, row)]
            database[kind.table] = {"total": len(rows), "invalid": len(invalid_ids), "invalidIds": invalid_ids}
            if invalid_ids:
                issues.append(f"Found {len(invalid_ids)} invalid {kind.value}(s) with missing or empty data")
                recommendations.append(f"Delete invalid {kind.table}: {', '.join(str(i) for i in invalid_ids)}")

        if not issues:
            recommendations.append("System is healthy - all services operational")
        else:
            recommendations.append("Fix API key issues first")
            recommendations.append("Clean up invalid database entries")

        return {
            "success": True,
            "audit": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "aiServices": ai_services,
                "database": database,
                "aiOrchestration": ORCHESTRATION_INFO,
                "issues": issues,
                "recommendations": recommendations,
            },
        }
