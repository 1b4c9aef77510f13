"""
Loader — Загрузка сэмплов и конфигурации из файлов

Источники сэмплов:
- .json  — JSON массив {timestamp, tick | sqrtPriceX96} (основной формат)
- .csv   — заголовок + один tick в строке (timestamp = номер строки)
- .jsonl — события Swap пула (tick, sqrt_price_x96, evt_block_num)

Все ошибки формата — InputError; ошибки конфигурации — ConfigurationError.
Сначала JSON Schema (jsonschema), затем Pydantic модели.
"""

import csv
import json
from pathlib import Path
from typing import Any, Sequence

import structlog
from pydantic import ValidationError

from src.core.contracts import TickSamplesValidator, VolatilityConfigValidator
from src.core.domain.config import VolatilityConfig
from src.core.domain.samples import TickSample
from src.core.errors import ConfigurationError, InputError

logger = structlog.get_logger(__name__)


# =============================================================================
# JSON
# =============================================================================


def read_json_file(path: Path, error_cls: type[InputError] = InputError) -> Any:
    """
    Чтение JSON файла.

    Raises:
        error_cls: Файл отсутствует или не является JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise error_cls(f"file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise error_cls(f"{path} is not valid JSON: {e}") from e


def load_config(path: Path) -> VolatilityConfig:
    """
    Загрузка --config.

    Raises:
        ConfigurationError: Файл невалиден по схеме или по модели
    """
    data = read_json_file(path, ConfigurationError)
    problems = VolatilityConfigValidator().error_summary(data)
    if problems:
        raise ConfigurationError(f"invalid config {path}: {problems}")
    try:
        config = VolatilityConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid config {path}: {e}") from e
    logger.debug("config_loaded", path=str(path), **config.model_dump(mode="json"))
    return config


def parse_samples(data: Any, source: str = "<memory>") -> list[TickSample]:
    """
    Сэмплы из распарсенного JSON массива.

    Raises:
        InputError: Массив не соответствует схеме или модели
    """
    problems = TickSamplesValidator().error_summary(data)
    if problems:
        raise InputError(f"invalid samples in {source}: {problems}")
    try:
        return [TickSample.model_validate(record) for record in data]
    except ValidationError as e:
        raise InputError(f"invalid samples in {source}: {e}") from e


def load_samples(path: Path) -> list[TickSample]:
    """Загрузка JSON массива сэмплов (--input)."""
    samples = parse_samples(read_json_file(path), str(path))
    logger.debug("samples_loaded", path=str(path), count=len(samples))
    return samples


def dump_samples(samples: Sequence[TickSample], path: Path) -> None:
    """Запись сэмплов в формате --input."""
    records = [s.model_dump(by_alias=True, exclude_none=True) for s in samples]
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")


# =============================================================================
# CSV
# =============================================================================


def load_csv_ticks(path: Path) -> list[TickSample]:
    """
    CSV: строка заголовка, затем по одному tick в строке.

    timestamp = порядковый номер строки данных.

    Raises:
        InputError: Нечисловое значение или пустой файл
    """
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
    except FileNotFoundError as e:
        raise InputError(f"file not found: {path}") from e

    if not rows:
        raise InputError(f"{path} is empty (expected a header line)")

    samples = []
    for line_no, row in enumerate(rows[1:], start=2):
        if not row or not row[0].strip():
            continue
        try:
            tick = int(row[0].strip())
        except ValueError as e:
            raise InputError(f"{path}:{line_no}: invalid tick {row[0]!r}") from e
        try:
            samples.append(TickSample(timestamp=len(samples), tick=tick))
        except ValidationError as e:
            raise InputError(f"{path}:{line_no}: {e}") from e

    logger.debug("samples_loaded", path=str(path), count=len(samples), format="csv")
    return samples


# =============================================================================
# JSONL (Swap events)
# =============================================================================


def swap_event_to_sample(event: dict[str, Any]) -> TickSample:
    """
    Событие Swap → TickSample.

    timestamp = evt_block_num; приоритет у tick, иначе sqrt_price_x96.
    """
    if "evt_block_num" not in event:
        raise InputError(f"swap event without evt_block_num: {sorted(event)}")
    timestamp = int(event["evt_block_num"])
    if event.get("tick") is not None:
        return TickSample(timestamp=timestamp, tick=int(event["tick"]))
    if event.get("sqrt_price_x96") is not None:
        return TickSample(timestamp=timestamp, sqrt_price_x96=int(event["sqrt_price_x96"]))
    raise InputError("swap event carries neither 'tick' nor 'sqrt_price_x96'")


def load_swap_events_jsonl(path: Path) -> list[TickSample]:
    """
    JSONL событий Swap (выход substream), по событию в строке.

    Raises:
        InputError: Невалидная строка
    """
    samples = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    samples.append(swap_event_to_sample(json.loads(line)))
                except (json.JSONDecodeError, ValidationError, ValueError, TypeError) as e:
                    raise InputError(f"{path}:{line_no}: invalid swap event: {e}") from e
    except FileNotFoundError as e:
        raise InputError(f"file not found: {path}") from e

    logger.debug("samples_loaded", path=str(path), count=len(samples), format="jsonl")
    return samples


# =============================================================================
# DISPATCH
# =============================================================================

_LOADERS = {
    ".json": load_samples,
    ".csv": load_csv_ticks,
    ".jsonl": load_swap_events_jsonl,
}


def load_tick_source(path: Path) -> list[TickSample]:
    """
    Загрузка сэмплов по расширению файла.

    Raises:
        InputError: Неизвестное расширение
    """
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise InputError(
            f"unsupported sample file {path}: expected one of {sorted(_LOADERS)}"
        )
    return loader(path)
