"""Runtime settings loaded from the environment (and a local .env file)."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from bronze.schema import SchemaRegistry, default_registry, load_schema_file

load_dotenv()


@dataclass(frozen=True)
class Settings:
    raw_data_dir: Path
    bronze_data_dir: Path
    schema_file: Optional[str]
    max_workers: int
    parquet_compression: str
    change_detection: str
    log_level: str
    log_json: bool


def get_settings() -> Settings:
    return Settings(
        raw_data_dir=Path(os.getenv("RAW_DATA_DIR", "./data/raw")),
        bronze_data_dir=Path(os.getenv("BRONZE_DATA_DIR", "./data/bronze")),
        schema_file=os.getenv("SCHEMA_FILE") or None,
        max_workers=int(os.getenv("MAX_WORKERS", str(os.cpu_count() or 1))),
        parquet_compression=os.getenv("PARQUET_COMPRESSION", "snappy"),
        change_detection=os.getenv("CHANGE_DETECTION", "mtime"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes"),
    )


def load_registry(settings: Settings) -> SchemaRegistry:
    """Schema registry from SCHEMA_FILE, or the built-in football schemas."""
    if settings.schema_file:
        return load_schema_file(settings.schema_file)
    return default_registry()
