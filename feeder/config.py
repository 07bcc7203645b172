"""Configuration settings for Feeder."""

import re
from typing import List, Literal, Optional

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feeder.errors import ConfigurationError

DEFAULT_SCAN_INTERVAL_MINUTES = 2
DEFAULT_MAP_NAME = "feeder-file-semaphore"

_ENV = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


def parse_directories(value: Optional[str]) -> List[str]:
    """Split a `,` or `;` separated list of paths, dropping blanks."""
    if not value:
        return []
    return [d.strip() for d in re.split(r"[;,]", value) if d.strip()]


def coerce_interval(value) -> int:
    """Return a positive interval in minutes, falling back to the default."""
    try:
        interval = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid scan interval format: {value!r}. Using default: {DEFAULT_SCAN_INTERVAL_MINUTES}")
        return DEFAULT_SCAN_INTERVAL_MINUTES
    if interval <= 0:
        logger.warning(f"Invalid scan interval: {interval}. Using default: {DEFAULT_SCAN_INTERVAL_MINUTES}")
        return DEFAULT_SCAN_INTERVAL_MINUTES
    return interval


class ScanSettings(BaseSettings):
    model_config = _ENV

    source_directories: str = Field("", validation_alias="FEEDER_SOURCE_DIRECTORIES")
    scan_interval_minutes: int = Field(
        DEFAULT_SCAN_INTERVAL_MINUTES, validation_alias="FEEDER_SCAN_INTERVAL_MINUTES"
    )
    claim_key: Literal["name", "path"] = Field("name", validation_alias="FEEDER_CLAIM_KEY")
    enumeration_timeout: float = Field(60.0, validation_alias="FEEDER_ENUMERATION_TIMEOUT")
    stop_timeout: float = Field(30.0, validation_alias="FEEDER_STOP_TIMEOUT")

    @field_validator("scan_interval_minutes", mode="before")
    @classmethod
    def _interval(cls, value):
        return coerce_interval(value)

    @property
    def directories(self) -> List[str]:
        return parse_directories(self.source_directories)

    def require_directories(self) -> List[str]:
        directories = self.directories
        if not directories:
            raise ConfigurationError("At least one source directory must be provided")
        return directories


class StoreSettings(BaseSettings):
    model_config = _ENV

    backend: Literal["redis", "memory"] = Field("redis", validation_alias="FEEDER_STORE_BACKEND")
    map_name: str = Field(DEFAULT_MAP_NAME, validation_alias="FEEDER_DEDUP_MAP_NAME")
    redis_url: str = Field("redis://localhost:6379/0", validation_alias="FEEDER_REDIS_URL")
    socket_timeout: float = Field(5.0, validation_alias="FEEDER_REDIS_SOCKET_TIMEOUT")
    connect_timeout: float = Field(5.0, validation_alias="FEEDER_REDIS_CONNECT_TIMEOUT")

    @field_validator("map_name")
    @classmethod
    def _map_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Dedup map name must be configured")
        return value.strip()


class MonitorSettings(BaseSettings):
    model_config = _ENV

    enabled: bool = Field(False, validation_alias="FEEDER_MONITOR_ENABLED")
    report_directories: str = Field("", validation_alias="FEEDER_REPORT_DIRECTORIES")
    alert_threshold_hours: float = Field(24.0, validation_alias="FEEDER_ALERT_THRESHOLD_HOURS")
    netcool_url: Optional[str] = Field(None, validation_alias="FEEDER_NETCOOL_URL")
    netcool_timeout_seconds: float = Field(10.0, validation_alias="FEEDER_NETCOOL_TIMEOUT_SECONDS")


class ServerSettings(BaseSettings):
    model_config = _ENV

    enabled: bool = Field(False, validation_alias="FEEDER_SERVER_ENABLED")
    host: str = Field("0.0.0.0", validation_alias="FEEDER_HOST")
    port: int = Field(8091, validation_alias="FEEDER_PORT")


class LoggingSettings(BaseSettings):
    model_config = _ENV

    level: str = Field("INFO", validation_alias="FEEDER_LOG_LEVEL")
    json_format: bool = Field(False, validation_alias="FEEDER_LOG_JSON")


class Settings(BaseSettings):
    """Global Application Settings."""

    scan: ScanSettings = Field(default_factory=ScanSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore"
    )

    @property
    def report_directories(self) -> List[str]:
        """Monitored directories, defaulting to the scanned ones."""
        return parse_directories(self.monitor.report_directories) or self.scan.directories

    def log_summary(self) -> None:
        logger.info("Feeder configuration loaded:")
        logger.info(f"  Source directories: {self.scan.directories}")
        logger.info(f"  Scan interval: {self.scan.scan_interval_minutes} minutes")
        logger.info(f"  Dedup store: {self.store.backend} (map: {self.store.map_name})")
        logger.info(f"  Claim key: {self.scan.claim_key}")
