"""Coloured terminal output via Rich: one console for results, one for errors."""

from __future__ import annotations

from rich.console import Console
from rich.theme import Theme

THEME = Theme(
    {
        "level.info": "blue",
        "level.ok": "green",
        "level.warn": "yellow",
        "level.error": "bold red",
        "level.debug": "dim",
    }
)

console = Console(highlight=False, theme=THEME)
_err_console = Console(highlight=False, theme=THEME, stderr=True)

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def _emit(level: str, label: str, msg: str, target: Console = console) -> None:
    target.print(f"[level.{level}]\\[{label}][/level.{level}] {msg}")


def info(msg: str) -> None:
    _emit("info", "INFO", msg)


def success(msg: str) -> None:
    _emit("ok", "OK", msg)


def warn(msg: str) -> None:
    _emit("warn", "WARN", msg)


def error(msg: str) -> None:
    _emit("error", "ERROR", msg, _err_console)


def debug(msg: str) -> None:
    if _verbose:
        console.print(f"[level.debug]\\[DEBUG] {msg}[/level.debug]")
