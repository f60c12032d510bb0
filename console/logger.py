"""
PanelDeck - Console Diagnostic Logger
=======================================
Dual-output logger for the console client: writes to per-day log files
and prints to the terminal.

Log files are stored in data/logs/ with filenames like 2026-10-19.log.
Only connection lifecycle events are logged here; console output itself
lives in the scrollback buffer. Auth tokens are never written.
"""

import os
from datetime import datetime


class ConsoleLogger:
    """
    Writes timestamped, tagged lines to today's log file and stdout.

    Attributes:
        log_dir: Directory for log files.
        echo:    Whether lines are also printed to the terminal.
    """

    def __init__(self, log_dir: str, echo: bool = True):
        """
        Initialize the logger.

        Args:
            log_dir: Directory path for log files. Created if missing.
            echo:    Print each line to stdout as well.
        """
        self.log_dir = log_dir
        self.echo = echo

        os.makedirs(log_dir, exist_ok=True)

    def _get_log_path(self) -> str:
        """Get today's log file path."""
        today = datetime.now().strftime("%Y-%m-%d")
        return os.path.join(self.log_dir, f"{today}.log")

    def _timestamp(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _write(self, text: str) -> None:
        """Append a line to today's log file."""
        try:
            with open(self._get_log_path(), "a", encoding="utf-8") as f:
                f.write(text + "\n")
        except OSError:
            pass

    def _log(self, tag: str, text: str) -> None:
        line = f"[{self._timestamp()}] [{tag}] {text}"
        self._write(line)
        if self.echo:
            print(line, flush=True)

    def info(self, text: str) -> None:
        """Log an informational message."""
        self._log("INFO", text)

    def warn(self, text: str) -> None:
        """Log a recoverable problem (e.g. a failed token refresh)."""
        self._log("WARN", text)

    def error(self, text: str) -> None:
        """Log a failure that ended a session."""
        self._log("ERROR", text)
