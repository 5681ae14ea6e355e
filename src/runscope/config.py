"""
Runscope configuration, read from environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_DATABASE_URL = "sqlite:///./runscope.db"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ServiceConfig:
    """Settings for the API service, the store and the CLI"""
    # Storage
    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Client side (CLI)
    api_url: str = "http://localhost:8080"

    log_level: str = "INFO"


def load_config() -> ServiceConfig:
    """Build a ServiceConfig from the environment, falling back to defaults"""
    return ServiceConfig(
        database_url=os.getenv("RUNSCOPE_DATABASE_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        echo_sql=_env_bool("RUNSCOPE_ECHO_SQL", False),
        host=os.getenv("RUNSCOPE_HOST", "0.0.0.0"),
        port=int(os.getenv("RUNSCOPE_PORT", "8080")),
        cors_origins=_env_list("RUNSCOPE_CORS_ORIGINS", ["*"]),
        api_url=os.getenv("RUNSCOPE_API_URL", "http://localhost:8080"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper()
    )


def configure_logging(level: str = "INFO"):
    """Configure root logging for entry points"""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
