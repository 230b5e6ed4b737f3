from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # make it absolute so reload/CWD doesn't break it
        env_file=Path(__file__).resolve().parents[1] / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Timekeeper Cascade", validation_alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        validation_alias="APP_ENV",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_dir: Path = Field(
        default=Path(__file__).resolve().parents[1] / "logs",
        validation_alias="LOG_DIR",
    )

    # API
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")  # noqa: S104
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # MongoDB (transactions need a replica set)
    mongo_uri: str = Field(
        default="mongodb://localhost:27017/?replicaSet=rs0",
        validation_alias="MONGO_URI",
    )
    mongo_db: str = Field(default="timekeeper", validation_alias="MONGO_DB")
    mongo_documents_collection: str = Field(
        default="documents",
        validation_alias="MONGO_DOCUMENTS_COLLECTION",
    )

    # Cascade deletion
    transaction_limit: int = Field(default=200, ge=1, validation_alias="TRANSACTION_LIMIT")
    delete_chunk_size: int = Field(default=50, ge=1, validation_alias="DELETE_CHUNK_SIZE")
    query_chunk_size: int = Field(default=50, ge=1, validation_alias="QUERY_CHUNK_SIZE")
    conflict_sample_limit: int = Field(default=5, ge=1, validation_alias="CONFLICT_SAMPLE_LIMIT")
    parallel_stage_batches: bool = Field(default=False, validation_alias="PARALLEL_STAGE_BATCHES")


# Global settings instance
settings = Settings()
