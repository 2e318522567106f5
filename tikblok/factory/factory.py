import logging

import open_clip
import torch
from llama_index.core.llms import LLM
from llama_index.llms.google_genai import GoogleGenAI
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymilvus import connections, Collection as MilvusCollection

from tikblok.core.settings import AppSettings, VideoIndexMilvusSetting
from tikblok.models import Video, Comment, VideoMetadataEntry
from tikblok.repository.milvus import VideoVectorRepository
from tikblok.repository.milvus_rest import MilvusBulkClient
from tikblok.repository.mongo import VideoRepository, CommentRepository, CommentSummaryRepository
from tikblok.service import (
    ModelService,
    VideoIndexService,
    ReindexService,
    CommentSummaryService,
)
from tikblok.service.tracing import build_langfuse
from tikblok.trigger.change_stream import ChangeStreamWatcher
from tikblok.trigger.reactor import VideoWriteReactor, CommentWriteReactor

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Builds every component once from the settings read at startup"""

    def __init__(
        self,
        app_settings: AppSettings,
        milvus_settings: VideoIndexMilvusSetting,
        milvus_alias: str = "default",
        milvus_db_name: str = "default",
    ):
        self.app_settings = app_settings
        self.milvus_settings = milvus_settings

        self._video_repo = VideoRepository(collection=Video)
        self._comment_repo = CommentRepository(collection=Comment)
        self._comment_summary_repo = CommentSummaryRepository(collection=VideoMetadataEntry)

        self._video_vector_repo = self._init_milvus_repo(
            settings=milvus_settings,
            db_name=milvus_db_name,
            alias=milvus_alias
        )
        self._bulk_client = MilvusBulkClient(
            base_url=milvus_settings.rest_uri,
            collection_name=milvus_settings.COLLECTION_NAME,
            namespace=milvus_settings.NAMESPACE,
            token=milvus_settings.rest_token,
            timeout=milvus_settings.REST_TIMEOUT
        )

        self._model_service = self._init_model_service(
            app_settings.MODEL_NAME,
            app_settings.PRETRAINED_WEIGHTS,
            app_settings.USE_PRETRAINED,
            app_settings.DEVICE
        )
        logger.info(f"Text embedding dimension: {self._model_service.embedding_dim}")
        self._llm = self._init_llm(app_settings)
        self._langfuse = build_langfuse(app_settings)

        self._video_index_service = VideoIndexService(
            model_service=self._model_service,
            video_vector_repo=self._video_vector_repo,
            video_repo=self._video_repo
        )
        self._reindex_service = ReindexService(
            video_repo=self._video_repo,
            video_index_service=self._video_index_service,
            bulk_client=self._bulk_client,
            batch_size=milvus_settings.REINDEX_BATCH_SIZE
        )
        self._comment_summary_service = CommentSummaryService(
            llm=self._llm,
            comment_repo=self._comment_repo,
            summary_repo=self._comment_summary_repo,
            cooldown_seconds=app_settings.COMMENT_SUMMARY_COOLDOWN_SECONDS,
            max_comments=app_settings.COMMENT_SUMMARY_MAX_COMMENTS,
            timeout_seconds=app_settings.LLM_TIMEOUT,
            langfuse=self._langfuse,
            video_repo=self._video_repo
        )

    def _init_milvus_repo(
        self,
        settings: VideoIndexMilvusSetting,
        db_name: str = "default",
        alias: str = "default"
    ) -> VideoVectorRepository:
        if connections.has_connection(alias):
            connections.remove_connection(alias)

        conn_params = {
            "host": settings.HOST,
            "port": settings.PORT,
            "db_name": db_name
        }

        if settings.TOKEN:
            conn_params["token"] = settings.TOKEN
        elif settings.USER and settings.PASSWORD:
            conn_params["user"] = settings.USER
            conn_params["password"] = settings.PASSWORD

        connections.connect(alias=alias, **conn_params)
        collection = MilvusCollection(settings.COLLECTION_NAME, using=alias)
        collection.load()
        logger.info(f"Milvus collection '{settings.COLLECTION_NAME}' loaded")

        search_params = {
            "metric_type": settings.METRIC_TYPE or "COSINE",
            "params": settings.SEARCH_PARAMS or {}
        }
        return VideoVectorRepository(
            collection=collection,
            search_params=search_params,
            namespace=settings.NAMESPACE
        )

    def _init_model_service(
        self,
        model_name: str,
        pretrained_weights: str,
        use_pretrained: bool = True,
        device: str = "cuda"
    ) -> ModelService:
        # Load model with or without pretrained weights based on configuration
        try:
            if use_pretrained:
                logger.info(f"Initializing model: {model_name} with pretrained weights: {pretrained_weights}")
                model, _, _ = open_clip.create_model_and_transforms(
                    model_name,
                    pretrained=pretrained_weights
                )
            else:
                logger.info(f"Initializing model: {model_name} without pretrained weights")
                model, _, _ = open_clip.create_model_and_transforms(
                    model_name,
                    pretrained=None
                )

            tokenizer = open_clip.get_tokenizer(model_name)

            if model is None:
                raise ValueError(f"Model {model_name} failed to initialize")

            # Test model with a simple input to ensure it's working
            test_tokens = tokenizer(["test"])
            with torch.no_grad():
                test_embedding = model.encode_text(test_tokens)

            logger.info(f"Model {model_name} initialized successfully with shape: {test_embedding.shape}")
            return ModelService(model=model, tokenizer=tokenizer, device=device)

        except Exception as e:
            logger.error(f"Failed to initialize model {model_name} with use_pretrained={use_pretrained}: {e}")
            # Try fallback model if available
            if model_name != "ViT-B-32":
                logger.info("Attempting fallback to ViT-B-32 model")
                return self._init_model_service("ViT-B-32", pretrained_weights, use_pretrained, device)
            raise

    def _init_llm(self, settings: AppSettings) -> LLM:
        logger.info(f"Initializing LLM: {settings.LLM_MODEL_NAME}")
        return GoogleGenAI(
            model=settings.LLM_MODEL_NAME,
            api_key=settings.GEMINI_API_KEY,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            max_retries=settings.LLM_MAX_RETRIES
        )

    def get_comment_summary_repo(self) -> CommentSummaryRepository:
        return self._comment_summary_repo

    def get_video_vector_repo(self) -> VideoVectorRepository:
        return self._video_vector_repo

    def get_video_index_service(self) -> VideoIndexService:
        return self._video_index_service

    def get_reindex_service(self) -> ReindexService:
        return self._reindex_service

    def get_change_stream_watcher(self, database: AsyncIOMotorDatabase) -> ChangeStreamWatcher:
        return ChangeStreamWatcher(
            videos=database[Video.Settings.name],
            comments=database[Comment.Settings.name],
            video_reactor=VideoWriteReactor(self._video_index_service),
            comment_reactor=CommentWriteReactor(self._comment_summary_service),
            max_concurrency=self.app_settings.COMMENT_SUMMARY_MAX_CONCURRENCY
        )

    def close(self) -> None:
        if self._langfuse is not None:
            self._langfuse.flush()
            logger.info("Langfuse traces flushed")
