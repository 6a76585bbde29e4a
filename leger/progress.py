"""Progress indicators for long-running steps."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TypeVar

from tqdm import tqdm

T = TypeVar("T")

_SPIN_INTERVAL = 0.1


def show_progress(message: str, task: Callable[[], T]) -> T:
    """Run task while a spinner with message runs on stderr; return its result."""
    bar = tqdm(total=None, desc=message, dynamic_ncols=True)
    stop = threading.Event()

    def spin() -> None:
        while not stop.wait(_SPIN_INTERVAL):
            bar.update(1)

    spinner = threading.Thread(target=spin, daemon=True)
    spinner.start()
    try:
        return task()
    finally:
        stop.set()
        spinner.join()
        bar.close()


def show_progress_with_steps(message: str, total_steps: int) -> tqdm:
    """Return a progress bar for a known number of steps."""
    return tqdm(total=total_steps, desc=message, dynamic_ncols=True, unit="it")