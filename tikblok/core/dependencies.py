from fastapi import Depends, Header, Request, HTTPException

from tikblok.controller.search_controller import SearchController
from tikblok.controller.admin_controller import AdminController, verify_api_key
from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import AppSettings
from tikblok.factory.factory import ServiceFactory

logger = SimpleLogger(__name__)


def get_app_settings(request: Request) -> AppSettings:
    """Settings read once at startup"""
    settings = getattr(request.app.state, 'settings', None)
    if settings is None:
        settings = AppSettings()
        request.app.state.settings = settings
    return settings


def get_service_factory(request: Request) -> ServiceFactory:
    """Get ServiceFactory from app state"""
    service_factory = getattr(request.app.state, 'service_factory', None)
    if service_factory is None:
        logger.error("ServiceFactory not found in app state")
        raise HTTPException(
            status_code=503,
            detail="Service factory not initialized. Please check application startup."
        )
    return service_factory


def get_search_controller(
    service_factory: ServiceFactory = Depends(get_service_factory)
) -> SearchController:
    return SearchController(
        video_index_service=service_factory.get_video_index_service(),
        comment_summary_repo=service_factory.get_comment_summary_repo()
    )


def require_reindex_key(
    x_reindex_key: str | None = Header(default=None, alias="x-reindex-key"),
    app_settings: AppSettings = Depends(get_app_settings)
) -> None:
    """Runs before the admin controller is built, so a bad key is a 401 even during startup"""
    verify_api_key(x_reindex_key, app_settings.REINDEX_API_KEY)


def get_admin_controller(
    service_factory: ServiceFactory = Depends(get_service_factory)
) -> AdminController:
    return AdminController(
        reindex_service=service_factory.get_reindex_service(),
        video_index_service=service_factory.get_video_index_service()
    )
