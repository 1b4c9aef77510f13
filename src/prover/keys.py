"""
Keys — Генерация и загрузка proving/verifying ключей

keygen:
- число ограничений схемы формы shape должно помещаться в 2^degree строк
- ключи привязаны к форме схемы и degree
- запись в JSON: proving_key.json, verifying_key.json

Загрузка: один раз на процесс (lru_cache), ключи immutable и
разделяются между параллельными запросами без блокировок.
"""

import hashlib
import json
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Final

import structlog
from pydantic import ValidationError

from src.core.domain.proof import CircuitShape, ProvingKey, VerifyingKey
from src.core.errors import ConfigurationError
from src.prover.digest_backend import DIGEST_BACKEND_KIND
from src.prover.registry import ensure_backend_kind
from src.volatility.calculators.circuit import constraint_count_for

logger = structlog.get_logger(__name__)

DEFAULT_DEGREE: Final[int] = 17
MAX_DEGREE: Final[int] = 32

PROVING_KEY_FILE: Final[str] = "proving_key.json"
VERIFYING_KEY_FILE: Final[str] = "verifying_key.json"

KEY_MATERIAL_BYTES: Final[int] = 32


def generate_keys(
    shape: CircuitShape,
    degree: int = DEFAULT_DEGREE,
    backend_kind: str = DIGEST_BACKEND_KIND,
) -> tuple[ProvingKey, VerifyingKey]:
    """
    Генерация пары ключей для формы схемы.

    Args:
        shape: Форма схемы (из конфигурации)
        degree: log2 числа строк схемы
        backend_kind: Тип proving backend

    Returns:
        (proving_key, verifying_key)

    Raises:
        ConfigurationError: Неизвестный backend_kind, degree вне диапазона
            или схема не помещается
    """
    ensure_backend_kind(backend_kind)
    if not 1 <= degree <= MAX_DEGREE:
        raise ConfigurationError(f"degree must be in [1, {MAX_DEGREE}], got {degree}")

    constraints = constraint_count_for(shape)
    rows = 1 << degree
    if constraints > rows:
        raise ConfigurationError(
            f"circuit needs {constraints} constraints, degree {degree} allows {rows}; "
            f"use degree >= {(constraints - 1).bit_length()}"
        )

    material = secrets.token_hex(KEY_MATERIAL_BYTES)
    key_id = hashlib.sha256(
        f"{shape.shape_id()}:{degree}:{material}".encode("utf-8")
    ).hexdigest()[:16]

    common = dict(
        backend_kind=backend_kind, shape=shape, degree=degree, key_id=key_id, material=material
    )
    logger.info(
        "keys_generated",
        backend=backend_kind,
        key_id=key_id,
        degree=degree,
        constraints=constraints,
        sample_count=shape.sample_count,
    )
    return ProvingKey(**common), VerifyingKey(**common)


def write_keys(
    keys_dir: Path, proving_key: ProvingKey, verifying_key: VerifyingKey
) -> tuple[Path, Path]:
    """Запись ключей в keys_dir (создаётся при необходимости)."""
    keys_dir.mkdir(parents=True, exist_ok=True)
    pk_path = keys_dir / PROVING_KEY_FILE
    vk_path = keys_dir / VERIFYING_KEY_FILE
    pk_path.write_text(proving_key.model_dump_json(indent=2), encoding="utf-8")
    vk_path.write_text(verifying_key.model_dump_json(indent=2), encoding="utf-8")
    logger.info("keys_written", proving_key=str(pk_path), verifying_key=str(vk_path))
    return pk_path, vk_path


def _read_key_file(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"key file not found: {path} (run keygen first)") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"key file {path} is not valid JSON: {e}") from e


@lru_cache(maxsize=None)
def load_proving_key(path: Path) -> ProvingKey:
    """
    Загрузка proving key (один раз на процесс).

    Raises:
        ConfigurationError: Файл отсутствует или невалиден
    """
    try:
        key = ProvingKey.model_validate(_read_key_file(path))
    except ValidationError as e:
        raise ConfigurationError(f"invalid proving key {path}: {e}") from e
    logger.debug("proving_key_loaded", path=str(path), key_id=key.key_id)
    return key


@lru_cache(maxsize=None)
def load_verifying_key(path: Path) -> VerifyingKey:
    """
    Загрузка verifying key (один раз на процесс).

    Raises:
        ConfigurationError: Файл отсутствует или невалиден
    """
    try:
        key = VerifyingKey.model_validate(_read_key_file(path))
    except ValidationError as e:
        raise ConfigurationError(f"invalid verifying key {path}: {e}") from e
    logger.debug("verifying_key_loaded", path=str(path), key_id=key.key_id)
    return key


def ensure_shape(key: ProvingKey | VerifyingKey, shape: CircuitShape) -> None:
    """
    Форма из конфигурации должна совпадать с формой ключей.

    Raises:
        ConfigurationError: Формы различаются
    """
    if key.shape != shape:
        raise ConfigurationError(
            f"config circuit shape {shape.model_dump()} does not match key "
            f"{key.key_id} shape {key.shape.model_dump()}; rerun keygen"
        )
