"""Configuration management with YAML and environment variable support."""

import os
from pathlib import Path
from typing import ClassVar, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILE_ENV = "GOOJI_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config.yaml"


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads configuration from YAML file."""

    def get_field_value(self, field, field_name: str):
        # Not used with prepare method
        pass

    def prepare_field_value(self, field_name: str, field, value, value_is_complex: bool):
        return value

    def __call__(self):
        # config.yaml in the current directory unless GOOJI_CONFIG_FILE points elsewhere
        yaml_path = Path(os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
        if not yaml_path.exists():
            return {}

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return data


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


class StorageConfig(BaseModel):
    """Storage layout consumed by the video and metadata stores.

    Any directory left unset is placed under ``base_path``.
    """

    base_path: Path = Path("storage")
    uploads: Optional[Path] = None
    temp: Optional[Path] = None
    logs: Optional[Path] = None
    thumbnails: Optional[Path] = None
    metadata: Optional[Path] = None

    @model_validator(mode="after")
    def fill_default_dirs(self):
        for name in ("uploads", "temp", "logs", "thumbnails", "metadata"):
            if getattr(self, name) is None:
                setattr(self, name, self.base_path / name)
        return self

    def directories(self) -> list[Path]:
        return [self.uploads, self.temp, self.logs, self.thumbnails, self.metadata]

    def ensure_directories(self) -> None:
        """Create every storage directory if absent."""
        for directory in self.directories():
            Path(directory).mkdir(parents=True, exist_ok=True)


class UploadConfig(BaseModel):
    """Upload validation and metadata sanitization limits."""

    max_size: int = 100 * 1024 * 1024
    allowed_types: list[str] = ["video/mp4", "video/webm", "video/avi", "video/mov"]
    allowed_extensions: list[str] = [".mp4", ".webm", ".avi", ".mov"]
    default_tags: list[str] = ["ojibwe", "language", "culture"]
    max_text_length: int = 200
    max_tag_length: int = 50
    thumbnail_timestamp: float = Field(default=1.0, ge=0)

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and ensure the leading dot."""
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]


class FFmpegConfig(BaseModel):
    """External media tool configuration."""

    path: str = "ffmpeg"
    thumbnail_quality: int = Field(default=2, ge=1, le=31)


class ThumbnailConfig(BaseModel):
    """Background thumbnail worker pool."""

    workers: int = Field(default=2, ge=1)
    max_pending: int = Field(default=64, ge=1)
    max_status: int = Field(default=1024, ge=1)
    drain_on_shutdown: bool = False


class LoggingConfig(BaseModel):
    """Log level and sinks."""

    level: str = "INFO"
    debug: bool = False
    to_file: bool = True


class Settings(BaseSettings):
    """Main application settings with YAML and environment variable support.

    Configuration sources (in priority order):
    1. Explicit keyword arguments
    2. Environment variables (prefix: GOOJI_, delimiter: __)
    3. .env file
    4. YAML file (config.yaml or $GOOJI_CONFIG_FILE)
    5. Field defaults
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="GOOJI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)
    thumbnails: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        """Customize settings sources to include YAML configuration.

        Priority order (highest to lowest):
        1. Init settings (programmatic overrides, used by tests)
        2. Environment variables
        3. .env file
        4. YAML file
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


def load_settings(**overrides) -> Settings:
    """Build a fresh Settings instance.

    Components receive the result through their constructors; there is no
    module-level settings object.
    """
    return Settings(**overrides)
