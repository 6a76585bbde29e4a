"""Coloured text helpers for consistent command output."""

from __future__ import annotations

from typing import Any

from termcolor import colored


def _sprint(args: tuple[Any, ...]) -> str:
    # Operands are separated by a space only when neither neighbour is a string.
    parts: list[str] = []
    for i, arg in enumerate(args):
        if i > 0 and not isinstance(arg, str) and not isinstance(args[i - 1], str):
            parts.append(" ")
        parts.append(str(arg))
    return "".join(parts)


def success(*args: Any) -> str:
    """Return the operands as green text."""
    return colored(_sprint(args), "green")


def error(*args: Any) -> str:
    """Return the operands as red text."""
    return colored(_sprint(args), "red")


def warning(*args: Any) -> str:
    """Return the operands as yellow text."""
    return colored(_sprint(args), "yellow")


def info(*args: Any) -> str:
    """Return the operands as cyan text."""
    return colored(_sprint(args), "cyan")


def bold(*args: Any) -> str:
    """Return the operands as bold text."""
    return colored(_sprint(args), attrs=["bold"])


def _printf(color: str, fmt: str, args: tuple[Any, ...]) -> None:
    text = fmt % args if args else fmt
    if not text.endswith("\n"):
        text += "\n"
    print(colored(text, color), end="")


def success_printf(fmt: str, *args: Any) -> None:
    """Print %-formatted text in green, ending with a newline."""
    _printf("green", fmt, args)


def error_printf(fmt: str, *args: Any) -> None:
    """Print %-formatted text in red, ending with a newline."""
    _printf("red", fmt, args)


def warning_printf(fmt: str, *args: Any) -> None:
    """Print %-formatted text in yellow, ending with a newline."""
    _printf("yellow", fmt, args)


def info_printf(fmt: str, *args: Any) -> None:
    """Print %-formatted text in cyan, ending with a newline."""
    _printf("cyan", fmt, args)