"""
Configuration settings for the Spanner repro harness.

Uses Pydantic Settings to load environment variables for the emulator
container, the target database, admin-operation bounds, the demo variant and
logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spanner_repro.domain.models import (
    DEFAULT_CONTAINER_NAME,
    DEFAULT_DATABASE,
    DEFAULT_GRPC_HOST,
    DEFAULT_IMAGE,
    DEFAULT_INSTANCE,
    DEFAULT_PROJECT,
    DEFAULT_REST_HOST,
    DatabaseConfig,
    EmulatorConfig,
)


class Settings(BaseSettings):
    # Target database
    spanner_project: str = Field(DEFAULT_PROJECT, alias="SPANNER_PROJECT")
    spanner_instance: str = Field(DEFAULT_INSTANCE, alias="SPANNER_INSTANCE")
    spanner_database: str = Field(DEFAULT_DATABASE, alias="SPANNER_DATABASE")

    # Emulator container
    emulator_container_name: str = Field(DEFAULT_CONTAINER_NAME, alias="EMULATOR_CONTAINER_NAME")
    emulator_image: str = Field(DEFAULT_IMAGE, alias="EMULATOR_IMAGE")
    emulator_grpc_host: str = Field(DEFAULT_GRPC_HOST, alias="EMULATOR_GRPC_HOST")
    emulator_rest_host: str = Field(DEFAULT_REST_HOST, alias="EMULATOR_REST_HOST")
    emulator_ready_timeout: float = Field(30.0, alias="EMULATOR_READY_TIMEOUT")
    keep_emulator: bool = Field(False, alias="KEEP_EMULATOR")

    # Timeouts (seconds). The admin bound is tuned for the local emulator only.
    admin_operation_timeout: float = Field(2.0, alias="ADMIN_OPERATION_TIMEOUT")
    reachability_timeout: float = Field(1.0, alias="REACHABILITY_TIMEOUT")

    # Demo variant
    demo_update_mode: Literal["parameter", "literal"] = Field(
        "parameter", alias="DEMO_UPDATE_MODE"
    )
    demo_insert_commit_timestamp: bool = Field(False, alias="DEMO_INSERT_COMMIT_TIMESTAMP")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    client_log_level: str = Field("WARNING", alias="CLIENT_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def emulator_config(self) -> EmulatorConfig:
        return EmulatorConfig(
            container_name=self.emulator_container_name,
            image=self.emulator_image,
            grpc_host=self.emulator_grpc_host,
            rest_host=self.emulator_rest_host,
        )

    def database_config(self, ddl: tuple[str, ...] = ()) -> DatabaseConfig:
        return DatabaseConfig(
            project=self.spanner_project,
            instance=self.spanner_instance,
            database=self.spanner_database,
            ddl=ddl,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
