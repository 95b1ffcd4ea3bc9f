"""Configuration defaults, env vars, and runtime options for eisenhower."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from eisenhower import __version__

VERSION = __version__

DEFAULT_DATA_DIR = Path.home() / ".eisenhower"
DEFAULT_SAVE_DELAY = 0.2


def _truthy_env(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


@dataclass
class Config:
    """Runtime configuration shared by every CLI command."""

    # Storage
    data_dir: str = ""
    save_delay: float = DEFAULT_SAVE_DELAY

    # Focus timer
    notify: bool = True

    # Misc
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.data_dir:
            self.data_dir = os.environ.get("EISENHOWER_DATA_DIR") or str(DEFAULT_DATA_DIR)
        if self.notify:
            self.notify = _truthy_env(os.environ.get("EISENHOWER_NOTIFY"))
        if self.save_delay < 0:
            self.save_delay = 0.0

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


def is_windows() -> bool:
    return sys.platform == "win32"


def is_macos() -> bool:
    return sys.platform == "darwin"


def is_linux() -> bool:
    return sys.platform.startswith("linux")
