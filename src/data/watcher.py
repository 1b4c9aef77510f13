"""
Watcher — Окна сэмплов из директории файлов substream

Файлы `<start_block>-<end_block>.jsonl` содержат события Swap. Читаем с
самого нового (по end_block) и добавляем более старые файлы, пока не
наберётся sample_count сэмплов; окно — последние sample_count сэмплов.

Новое окно выдаётся, только если появился файл с end_block больше
уже обработанного.
"""

import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Final, Optional

import structlog

from src.core.domain.samples import TickSample
from src.core.errors import InputError
from src.data.loader import load_swap_events_jsonl

logger = structlog.get_logger(__name__)

BLOCK_RANGE_PATTERN: Final[re.Pattern] = re.compile(r"^(\d+)-(\d+)\.jsonl$")
DEFAULT_POLL_INTERVAL_SEC: Final[float] = 10.0


@dataclass(frozen=True)
class BlockFile:
    """Файл substream с диапазоном блоков."""

    path: Path
    start_block: int
    end_block: int


def parse_block_range(path: Path) -> Optional[BlockFile]:
    """
    Диапазон блоков из имени файла, None для посторонних файлов.

    Examples:
        >>> parse_block_range(Path("100-200.jsonl")).end_block
        200
    """
    match = BLOCK_RANGE_PATTERN.match(path.name)
    if match is None:
        return None
    return BlockFile(path=path, start_block=int(match.group(1)), end_block=int(match.group(2)))


def list_block_files(directory: Path) -> list[BlockFile]:
    """Файлы substream, от нового к старому (по end_block)."""
    if not directory.is_dir():
        raise InputError(f"watch directory not found: {directory}")
    files = [parse_block_range(p) for p in directory.iterdir() if p.is_file()]
    return sorted((f for f in files if f is not None), key=lambda f: f.end_block, reverse=True)


def read_latest_window(directory: Path, sample_count: int) -> tuple[list[TickSample], int]:
    """
    Последние sample_count сэмплов и end_block самого нового файла.

    Raises:
        InputError: Нет файлов или сэмплов меньше sample_count
    """
    files = list_block_files(directory)
    if not files:
        raise InputError(f"no <start>-<end>.jsonl files in {directory}")

    collected: list[TickSample] = []
    for block_file in files:
        collected = load_swap_events_jsonl(block_file.path) + collected
        if len(collected) >= sample_count:
            break

    if len(collected) < sample_count:
        raise InputError(
            f"only {len(collected)} samples in {directory}, need {sample_count}"
        )
    return collected[-sample_count:], files[0].end_block


class DirectoryWatcher:
    """
    Опрос директории substream с ограниченным числом циклов.

    stop_event прерывает ожидание между опросами.
    """

    def __init__(
        self,
        directory: Path,
        sample_count: int,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        stop_event: Optional[threading.Event] = None,
    ):
        self.directory = directory
        self.sample_count = sample_count
        self.poll_interval_sec = poll_interval_sec
        self.stop_event = stop_event or threading.Event()
        self.latest_block = -1
        self._logger = logger.bind(directory=str(directory))

    def poll_once(self) -> Optional[list[TickSample]]:
        """Новое окно, если появился более новый end_block, иначе None."""
        files = list_block_files(self.directory)
        if not files or files[0].end_block <= self.latest_block:
            self._logger.debug("no_new_blocks", latest_block=self.latest_block)
            return None

        samples, end_block = read_latest_window(self.directory, self.sample_count)
        self.latest_block = end_block
        self._logger.info("new_window", latest_block=end_block, samples=len(samples))
        return samples

    def watch(
        self,
        on_window: Callable[[list[TickSample]], None],
        max_polls: Optional[int] = None,
    ) -> int:
        """
        Цикл опроса: on_window вызывается для каждого нового окна.

        Args:
            on_window: Обработчик окна (исключения пробрасываются)
            max_polls: Предел числа опросов (None — до stop_event)

        Returns:
            Число обработанных окон
        """
        windows = 0
        polls = 0
        while not self.stop_event.is_set():
            samples = self.poll_once()
            polls += 1
            if samples is not None:
                on_window(samples)
                windows += 1
            if max_polls is not None and polls >= max_polls:
                break
            self.stop_event.wait(self.poll_interval_sec)
        return windows
