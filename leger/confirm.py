"""Yes/no prompts on standard input."""

from __future__ import annotations

import sys


def _read_answer() -> str | None:
    line = sys.stdin.readline()
    if not line.endswith("\n"):
        return None
    return line.strip().lower()


def confirm(message: str) -> bool:
    """Ask a yes/no question; anything but y or yes, including no answer, is no."""
    print(f"{message} [y/N]: ", end="", flush=True)
    answer = _read_answer()
    if answer is None:
        return False
    return answer in ("y", "yes")


def confirm_with_default(message: str, default_yes: bool) -> bool:
    """Ask a yes/no question; an empty or unreadable answer gives the default."""
    prompt = "[Y/n]" if default_yes else "[y/N]"
    print(f"{message} {prompt}: ", end="", flush=True)
    answer = _read_answer()
    if answer is None or answer == "":
        return default_yes
    return answer in ("y", "yes")