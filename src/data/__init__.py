"""Источники сэмплов: файлы JSON/CSV/JSONL, синтетика, директория substream."""

from src.data.loader import (
    dump_samples,
    load_config,
    load_csv_ticks,
    load_samples,
    load_swap_events_jsonl,
    load_tick_source,
    parse_samples,
    read_json_file,
)
from src.data.synthetic import generate_synthetic_samples
from src.data.watcher import DirectoryWatcher, parse_block_range, read_latest_window

__all__ = [
    "dump_samples",
    "load_config",
    "load_csv_ticks",
    "load_samples",
    "load_swap_events_jsonl",
    "load_tick_source",
    "parse_samples",
    "read_json_file",
    "generate_synthetic_samples",
    "DirectoryWatcher",
    "parse_block_range",
    "read_latest_window",
]
