"""Fire-and-forget helpers that open (and optionally close) the user's browser."""

import logging
import subprocess
import sys
import threading
import time
from typing import List, Optional

logger = logging.getLogger("locate.browser")

# ----------------------------
# LAUNCH CONFIGURATION
# ----------------------------
LAUNCH_DELAY = 0.5  # seconds, lets the listener come up first


def open_command(url: str, platform: Optional[str] = None) -> List[str]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        # empty title argument, otherwise start treats a quoted URL as the title
        return ["cmd", "/C", "start", "", url]
    if platform == "darwin":
        return ["open", url]
    return ["xdg-open", url]


def close_command(platform: Optional[str] = None) -> List[str]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return ["taskkill", "/IM", "msedge.exe"]
    if platform == "darwin":
        return ["osascript", "-e", 'tell application "Safari" to quit']
    return ["pkill", "-f", "firefox"]


def run_detached(command: List[str]) -> bool:
    """Start `command` without waiting for it. Returns False if it could not start."""
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, ValueError) as exc:
        logger.debug({"evt": "browser_command_failed", "command": command[0], "error": str(exc)})
        return False
    logger.debug({"evt": "browser_command_started", "command": command[0]})
    return True


def _later(command: List[str], delay: float, name: str) -> threading.Thread:
    def run():
        if delay > 0:
            time.sleep(delay)
        run_detached(command)

    thread = threading.Thread(target=run, name=name, daemon=True)
    thread.start()
    return thread


def open_browser_later(url: str, delay: float = LAUNCH_DELAY) -> threading.Thread:
    """Open `url` in the default browser from a daemon thread after `delay` seconds."""
    return _later(open_command(url), delay, "browser-open")


def close_browser_later(delay: float = 0.0) -> threading.Thread:
    return _later(close_command(), delay, "browser-close")
