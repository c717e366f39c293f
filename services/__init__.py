from services.content_store import ContentStore, is_valid_document
from services.refinement_service import RefinementOrchestrator, merge_refinement
from services.authoring_service import AuthoringService
from services.admin_service import AdminService

__all__ = [
    'ContentStore',
    'is_valid_document',
    'RefinementOrchestrator',
    'merge_refinement',
    'AuthoringService',
    'AdminService'
]
