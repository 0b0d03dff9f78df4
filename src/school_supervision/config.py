"""Configuration management for the supervision toolkit."""

import json
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, NoDecode


class StorageConfig(BaseSettings):
    """Persistent store and backup settings."""

    data_file: Path = Field(Path("supervision_data.json"))
    backup_slots: int = Field(5)
    # user ids or names allowed to manage backups besides wildcard admins
    backup_operators: Annotated[List[str], NoDecode] = []

    class Config:
        env_prefix = "SUPERVISION_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @validator("backup_slots")
    def validate_backup_slots(cls, v):
        """At least one archived version must be kept."""
        if v < 1:
            raise ValueError("SUPERVISION_BACKUP_SLOTS must be at least 1")
        return v

    @validator("backup_operators", pre=True)
    def split_backup_operators(cls, v):
        """Accept a comma-separated list or a JSON array."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class LLMConfig(BaseSettings):
    """LLM API configuration settings."""

    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    llm_model: Optional[str] = None
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    code_generation_attempts: int = 5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


class ExportConfig(BaseSettings):
    """Document export settings."""

    dir: Path = Field(Path("exports"))
    pdf_font_path: Optional[Path] = None
    pdf_font_name: str = "Amiri"

    class Config:
        env_prefix = "EXPORT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @validator("pdf_font_path")
    def validate_font_path(cls, v):
        """Embedded fonts must be TrueType files."""
        if v is not None and v.suffix.lower() != ".ttf":
            raise ValueError("EXPORT_PDF_FONT_PATH must point to a .ttf file")
        return v


class AppConfig(BaseSettings):
    """Application configuration settings."""

    name: str = "school-supervision"
    version: str = "0.1.0"
    log_level: str = "INFO"
    default_school_name: str = "المدرسة الرئيسية"
    legacy_school_fallback: bool = True

    class Config:
        env_prefix = "APP_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @validator("log_level")
    def validate_log_level(cls, v):
        """Normalize and check the logging level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """Main application settings."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment."""
        return cls()

