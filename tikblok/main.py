from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tikblok.core.exceptions import ServiceError, InvalidArgumentError
from tikblok.core.lifespan import lifespan
from tikblok.core.logger import SimpleLogger
from tikblok.router import video_api, admin_api

logger = SimpleLogger(__name__)

API_PREFIX = "/api/v1"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    error = InvalidArgumentError(details or "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create FastAPI application"""

    app = FastAPI(
        title="TikBlok Video Search",
        description="Semantic video search, admin reindexing and comment summaries for TikBlok",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(video_api.router, prefix=API_PREFIX)
    app.include_router(admin_api.router, prefix=API_PREFIX)

    @app.get("/")
    async def root():
        service_factory = getattr(app.state, "service_factory", None)
        if service_factory is None:
            return {"status": "initializing", "message": "Service is starting up..."}
        return {
            "status": "operational",
            "service": "TikBlok Video Search",
            "endpoints": {
                "documentation": "/docs",
                "status": "/status",
                "search": f"{API_PREFIX}/videos/search",
                "comment_summary": f"{API_PREFIX}/videos/{{video_id}}/comment-summary",
                "reindex": f"{API_PREFIX}/admin/reindex",
            }
        }

    @app.get("/status")
    async def status():
        service_factory = getattr(app.state, "service_factory", None)
        if service_factory is None:
            return JSONResponse(
                status_code=503,
                content={"status": "unavailable", "message": "Service not initialized"}
            )

        try:
            vector_count = await service_factory.get_video_vector_repo().count()
        except Exception as e:
            logger.error(f"Status check failed to reach the vector index: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "vector_index": "unreachable"}
            )

        return {
            "status": "operational",
            "vector_index": {
                "collection": service_factory.milvus_settings.COLLECTION_NAME,
                "namespace": service_factory.milvus_settings.NAMESPACE,
                "entries": vector_count,
            },
            "reindex_running": service_factory.get_reindex_service().is_running,
        }

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(
        "tikblok.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
        access_log=True
    )


if __name__ == "__main__":
    run()
