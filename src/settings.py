"""
Settings — Runtime настройки и конфигурация логирования

Параметры процесса (не формы схемы): уровень логов, каталог ключей,
таймауты и повторы backend, размер пула batch. Читаются из окружения
с префиксом RV_ и из .env.

PROVIDER_URI принадлежит ingestion и здесь не читается.
"""

import logging
import sys
from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Keys / backend
    keys_dir: Path = Path("keys")
    backend_kind: str = "digest"  # keygen без --backend

    # Submit
    submit_timeout_sec: float = Field(120.0, gt=0)
    max_retries: int = Field(2, ge=0)
    retry_backoff_sec: float = Field(1.0, ge=0)

    # Batch / watch
    batch_workers: int = Field(4, ge=1)
    watch_poll_interval_sec: float = Field(10.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="RV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {value!r}")
        return level


def get_settings() -> Settings:
    """
    Настройки из окружения.

    Raises:
        pydantic.ValidationError: Невалидное значение RV_* переменной
    """
    return Settings()


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    structlog: фильтр по уровню, ISO timestamps, вывод в stderr.

    stdout остаётся под JSON результаты CLI.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors.append(structlog.processors.dict_tracebacks)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
