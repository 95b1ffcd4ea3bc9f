"""Desktop toast when the focus timer moves to another interval, best-effort."""

from __future__ import annotations

import subprocess

from eisenhower.config import is_linux, is_macos, is_windows
from eisenhower.focus import Mode

TITLE = "Eisenhower"

MESSAGES: dict[Mode, str] = {
    Mode.FOCUS: "Back to focus!",
    Mode.SHORT_BREAK: "Focus interval done, take a short break.",
    Mode.LONG_BREAK: "Focus interval done, take a long break.",
    Mode.IDLE: "Focus session finished.",
}


def _spawn(*cmd: str) -> None:
    """Start *cmd* detached; a missing binary is not an error."""
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError:
        pass


def toast_command(message: str) -> tuple[str, ...] | None:
    """The platform's notification command for *message*, if there is one."""
    if is_macos():
        return ("osascript", "-e", f'display notification "{message}" with title "{TITLE}"')
    if is_linux():
        return ("notify-send", TITLE, message)
    if is_windows():
        return ("powershell.exe", "-Command", "[System.Media.SystemSounds]::Asterisk.Play()")
    return None


def notify_interval_end(next_mode: Mode) -> None:
    """Announce the interval the timer just moved into."""
    cmd = toast_command(MESSAGES[next_mode])
    if cmd:
        _spawn(*cmd)
