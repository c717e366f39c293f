"""
Admin-only maintenance endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from models.content_models import CleanupRequest
from services.admin_service import AdminService
from services.auth import CurrentUser, require_admin

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["admin"])


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


@router.post("/cleanupInvalidContent")
async def cleanup_invalid_content(
    body: Optional[CleanupRequest] = None,
    admin: CurrentUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Dry run by default; pass dryRun=false to delete."""
    body = body or CleanupRequest()
    logger.info(f"Cleanup requested by {admin.email}")
    return await service.cleanup_invalid_content(body.content_type, dry_run=body.dry_run)


@router.post("/systemAudit")
async def system_audit(
    admin: CurrentUser = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.system_audit()
