#!/usr/bin/env python3
"""
Log sources that supply raw pull-event lines.

JournalLogSource reads the container runtime's unit from the systemd journal
with journalctl; FileLogSource reads an exported log file. Both fail with
LogSourceError, and with NoPullEventsError when the window holds no lines.
"""

import subprocess
from typing import List, Optional

from zim.utils.error_utils import (
    LogSourceError,
    create_log_source_error,
    create_no_pull_events_error,
)
from zim.utils.logging_utils import get_logger

logger = get_logger(__name__)


def journalctl_since(since: str) -> str:
    """Translate the --since value for journalctl: hours become 'Nh ago', dates pass through."""
    since = str(since).strip()
    if since.isdigit():
        return f"{int(since)}h ago"
    return since


def _non_empty_lines(text: str) -> List[str]:
    lines = []
    for line in text.splitlines():
        line = line.rstrip("\r")
        if not line.strip():
            continue
        # journalctl boundary markers such as "-- Boot 3f2a... --"
        if line.startswith("-- ") and line.endswith(" --"):
            continue
        lines.append(line)
    return lines


class JournalLogSource:
    """Reads pull events for a systemd unit from the journal"""

    def __init__(self, unit: str = "crio", grep: Optional[str] = "pulled image",
                 output_format: str = "plain", timeout: int = 60):
        self.unit = unit
        self.grep = grep
        self.output_format = output_format
        self.timeout = timeout

    @property
    def description(self) -> str:
        return f"journal unit '{self.unit}'"

    def build_command(self, since: str) -> List[str]:
        cmd = ["journalctl", "-u", self.unit, "--since", journalctl_since(since), "--no-pager", "--quiet"]
        if self.grep:
            cmd.extend(["-g", self.grep])
        if self.output_format == "json":
            cmd.extend(["-o", "json"])
        return cmd

    def fetch_log_lines(self, since: str) -> List[str]:
        """Raw journal lines for the unit since the given window.

        Raises:
            LogSourceError if journalctl is unavailable, fails or times out
            NoPullEventsError if no lines were found
        """
        cmd = self.build_command(since)
        logger.debug(f"Running command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout, check=False)
        except subprocess.TimeoutExpired as e:
            raise create_log_source_error(self.description, e) from e
        except OSError as e:
            raise create_log_source_error(self.description, e) from e

        lines = _non_empty_lines(result.stdout or "")
        stderr = (result.stderr or "").strip()

        if result.returncode != 0 and (stderr or lines):
            error = subprocess.CalledProcessError(result.returncode, cmd, output=result.stdout, stderr=result.stderr)
            raise create_log_source_error(self.description, error, stderr)

        # journalctl exits non-zero without output when --grep matches nothing
        if not lines:
            raise create_no_pull_events_error(self.description, since)

        logger.info(f"Retrieved {len(lines)} log lines from {self.description}")
        return lines


class FileLogSource:
    """Reads pull events from an exported log file"""

    def __init__(self, path: str):
        self.path = path

    @property
    def description(self) -> str:
        return f"log file '{self.path}'"

    def fetch_log_lines(self, since: str) -> List[str]:
        """All non-empty lines of the file. The window is assumed to be applied at export time.

        Raises:
            LogSourceError if the file cannot be read
            NoPullEventsError if the file holds no lines
        """
        logger.debug(f"Reading {self.description}; window '{since}' is not applied to files")
        try:
            with open(self.path, "r", encoding="utf-8", errors="replace") as f:
                lines = _non_empty_lines(f.read())
        except OSError as e:
            raise create_log_source_error(self.description, e) from e

        if not lines:
            raise create_no_pull_events_error(self.description, since)

        logger.info(f"Read {len(lines)} log lines from {self.description}")
        return lines


def create_log_source(config_manager):
    """Build the log source selected by configuration."""
    if config_manager.get_log_source() == "file":
        return FileLogSource(config_manager.get_log_file())
    if config_manager.get_log_source() != "journal":
        raise LogSourceError(f"Unknown log source '{config_manager.get_log_source()}'")
    return JournalLogSource(
        unit=config_manager.get_log_unit(),
        grep=config_manager.get_log_grep(),
        output_format=config_manager.get_log_format(),
        timeout=config_manager.get_log_timeout(),
    )
