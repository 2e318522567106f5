import asyncio
from contextlib import asynccontextmanager

from beanie import init_beanie
from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import MongoDBSettings, VideoIndexMilvusSetting, AppSettings
from tikblok.factory.factory import ServiceFactory
from tikblok.models import DOCUMENT_MODELS

logger = SimpleLogger(__name__)


async def connect_database(mongo_settings: MongoDBSettings) -> tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    mongo_client = AsyncIOMotorClient(mongo_settings.connection_string)

    await mongo_client.admin.command('ping')
    logger.info("Successfully connected to MongoDB")

    database = mongo_client[mongo_settings.MONGO_DB]
    await init_beanie(
        database=database,
        document_models=DOCUMENT_MODELS
    )
    logger.info("Beanie initialized successfully")
    return mongo_client, database


def log_watcher_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Change stream watcher stopped unexpectedly: {type(error).__name__}: {error}")
    else:
        logger.warning("Change stream watcher exited")


async def stop_watcher(task: asyncio.Task) -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        # Already reported by log_watcher_exit
        logger.debug(f"Watcher task ended with {type(e).__name__}")


def build_service_factory(app_settings: AppSettings, milvus_settings: VideoIndexMilvusSetting) -> ServiceFactory:
    service_factory = ServiceFactory(
        app_settings=app_settings,
        milvus_settings=milvus_settings
    )
    logger.info("Service factory initialized successfully")
    return service_factory


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown events
    """
    logger.info("Starting up application...")

    mongo_client = None
    watcher_task = None
    try:
        app_settings = AppSettings()
        mongo_client, database = await connect_database(MongoDBSettings())
        service_factory = build_service_factory(app_settings, VideoIndexMilvusSetting())

        if app_settings.ENABLE_CHANGE_STREAMS:
            watcher = service_factory.get_change_stream_watcher(database)
            watcher_task = asyncio.create_task(watcher.run())
            watcher_task.add_done_callback(log_watcher_exit)
            logger.info("Change stream triggers started")

        app.state.settings = app_settings
        app.state.service_factory = service_factory
        app.state.mongo_client = mongo_client

        logger.info("Application startup completed successfully")

    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        if mongo_client:
            mongo_client.close()
        raise

    yield

    logger.info("Shutting down application...")

    if watcher_task:
        await stop_watcher(watcher_task)
        logger.info("Change stream triggers stopped")

    service_factory.close()

    mongo_client.close()
    logger.info("MongoDB connection closed")
    logger.info("Application shutdown completed successfully")
