from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal
from dotenv import load_dotenv
from pathlib import Path

# Ensure we always load the repository-root .env regardless of current working directory
REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_PATH = REPO_ROOT / '.env'
load_dotenv(dotenv_path=ENV_PATH)

# Defaults shared with the services that take these values as constructor arguments
DEFAULT_COMMENT_SUMMARY_COOLDOWN_SECONDS = 10.0
DEFAULT_COMMENT_SUMMARY_MAX_COMMENTS = 50
DEFAULT_COMMENT_SUMMARY_MAX_CONCURRENCY = 10
DEFAULT_LLM_TIMEOUT_SECONDS = 30.0
DEFAULT_REINDEX_BATCH_SIZE = 100


class MongoDBSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH), env_file_encoding='utf-8', case_sensitive=False, extra='ignore'
    )
    MONGO_URI: str | None = Field(default=None, alias='MONGO_URI')
    MONGO_HOST: str = Field(default='localhost', alias='MONGO_HOST')
    MONGO_PORT: int = Field(default=27017, alias='MONGO_PORT')
    MONGO_DB: str = Field(default='tikblok', alias='MONGO_DB')
    MONGO_USER: str = Field(default='', alias='MONGO_USER')
    MONGO_PASSWORD: str = Field(default='', alias='MONGO_PASSWORD')

    @property
    def connection_string(self) -> str:
        if self.MONGO_URI:
            return self.MONGO_URI
        if self.MONGO_USER and self.MONGO_PASSWORD:
            return (
                f"mongodb://{self.MONGO_USER}:{self.MONGO_PASSWORD}"
                f"@{self.MONGO_HOST}:{self.MONGO_PORT}/?authSource=admin"
            )
        return f"mongodb://{self.MONGO_HOST}:{self.MONGO_PORT}"


class VideoIndexMilvusSetting(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='MILVUS_', env_file=str(ENV_PATH), env_file_encoding='utf-8', case_sensitive=False, extra='ignore'
    )
    COLLECTION_NAME: str = "tikblok_videos"
    NAMESPACE: str = "videos"
    HOST: str = 'localhost'
    PORT: str = '19530'
    # REST endpoint used by the bulk reindex path, defaults to http://HOST:PORT
    URI: str | None = None
    USER: str = ''
    PASSWORD: str = ''
    TOKEN: str = ''
    # Similarity metrics only: search results are ordered by descending score
    METRIC_TYPE: Literal["COSINE", "IP"] = "COSINE"
    INDEX_TYPE: str = 'AUTOINDEX'
    SEARCH_PARAMS: dict = {}
    REINDEX_BATCH_SIZE: int = DEFAULT_REINDEX_BATCH_SIZE
    REST_TIMEOUT: float = 60.0

    @property
    def rest_uri(self) -> str:
        return (self.URI or f"http://{self.HOST}:{self.PORT}").rstrip('/')

    @property
    def rest_token(self) -> str:
        if self.TOKEN:
            return self.TOKEN
        if self.USER and self.PASSWORD:
            return f"{self.USER}:{self.PASSWORD}"
        return ''


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH), env_file_encoding='utf-8', case_sensitive=False, extra='ignore'
    )
    # embedding model configuration
    MODEL_NAME: str = "ViT-B-32"
    USE_PRETRAINED: bool = True  # Whether to use pretrained weights
    PRETRAINED_WEIGHTS: str = "openai"  # pretrained weights (only used if USE_PRETRAINED=True)
    DEVICE: str = "cuda"

    # LLM Configuration
    LLM_MODEL_NAME: str = "gemini-2.5-flash-lite"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1024
    LLM_TIMEOUT: float = DEFAULT_LLM_TIMEOUT_SECONDS
    LLM_MAX_RETRIES: int = 3
    GEMINI_API_KEY: str | None = None

    # Comment summary
    COMMENT_SUMMARY_COOLDOWN_SECONDS: float = DEFAULT_COMMENT_SUMMARY_COOLDOWN_SECONDS
    COMMENT_SUMMARY_MAX_COMMENTS: int = DEFAULT_COMMENT_SUMMARY_MAX_COMMENTS
    # Comment events summarized at the same time by the change stream watcher
    COMMENT_SUMMARY_MAX_CONCURRENCY: int = DEFAULT_COMMENT_SUMMARY_MAX_CONCURRENCY

    # Langfuse tracing of comment summaries, enabled when both keys are set
    LANGFUSE_PUBLIC_KEY: str | None = None
    LANGFUSE_SECRET_KEY: str | None = None
    LANGFUSE_HOST: str | None = None

    # Admin
    REINDEX_API_KEY: str | None = None

    # Change stream triggers
    ENABLE_CHANGE_STREAMS: bool = False

