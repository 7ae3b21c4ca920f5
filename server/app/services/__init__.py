"""Service layer package."""

from .auth_service import AuthService
from .bulk_service import BulkActionService
from .import_export import ImportExportService
from .search_service import SearchService
from .tour_service import TourService
from .upload_service import UploadService

__all__ = [
    "AuthService",
    "BulkActionService",
    "ImportExportService",
    "SearchService",
    "TourService",
    "UploadService",
]
