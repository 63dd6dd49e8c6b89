"""
Migration progress output.

Prints one line when a migration phase starts and one when it ends, with
the time the phase took. Backups and disk copies can run for a long time,
so the operator always sees which phase is in flight.

Security Requirements:
- No credential exposure in output
- Messages are built from resource names only
"""

import logging
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO

from azmove.models import MigrationPhase

logger = logging.getLogger(__name__)


class ProgressStage(Enum):
    """Kind of progress line."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    WARNING = "warning"


@dataclass
class ProgressUpdate:
    """One recorded progress line."""

    stage: ProgressStage
    message: str
    timestamp: float
    phase: Optional[MigrationPhase]


class ProgressDisplay:
    """
    Phase-by-phase progress for a migration.

    Every update is recorded (see get_updates()) whether or not it is
    printed, and the duration of each finished phase is kept in
    phase_durations for the final summary.
    """

    SYMBOLS = {
        ProgressStage.STARTED: "►",
        ProgressStage.COMPLETED: "✓",
        ProgressStage.FAILED: "✗",
        ProgressStage.WARNING: "⚠",
    }

    ASCII_SYMBOLS = {
        ProgressStage.STARTED: ">",
        ProgressStage.COMPLETED: "OK",
        ProgressStage.FAILED: "FAIL",
        ProgressStage.WARNING: "WARN",
    }

    def __init__(
        self,
        use_unicode: bool = True,
        output_file: Optional[TextIO] = None,
        quiet: bool = False,
    ):
        """
        Args:
            use_unicode: Use Unicode symbols (True) or ASCII (False)
            output_file: Where to print (default: sys.stdout)
            quiet: Record updates without printing them
        """
        self.use_unicode = use_unicode
        self.output_file = output_file or sys.stdout
        self.quiet = quiet
        self.phase: Optional[MigrationPhase] = None
        self.title: Optional[str] = None
        self.phase_started: Optional[float] = None
        self.phase_durations: dict[MigrationPhase, float] = {}
        self.updates: list[ProgressUpdate] = []

    def start_phase(self, phase: MigrationPhase, title: str) -> None:
        """
        Announce a phase.

        Example:
            >>> progress = ProgressDisplay()
            >>> progress.start_phase(MigrationPhase.BACKUP, "Backing up VM to vault")
            ► Backing up VM to vault
        """
        self.phase = phase
        self.title = title
        self.phase_started = time.monotonic()
        self._record(ProgressStage.STARTED, title)

    def warn(self, message: str) -> None:
        self._record(ProgressStage.WARNING, message)

    def finish_phase(self, success: bool = True, message: Optional[str] = None) -> None:
        """
        Close the current phase and record how long it took.

        Args:
            success: Whether the phase succeeded
            message: Replaces the default "<title> completed/failed" text
        """
        outcome = "completed" if success else "failed"
        text = message or f"{self.title} {outcome}"

        if self.phase_started is not None:
            elapsed = time.monotonic() - self.phase_started
            if self.phase is not None:
                self.phase_durations[self.phase] = elapsed
            text += f" ({self.format_duration(elapsed)})"

        self._record(ProgressStage.COMPLETED if success else ProgressStage.FAILED, text)
        self.title = None
        self.phase_started = None

    @property
    def total_duration(self) -> float:
        return sum(self.phase_durations.values())

    @staticmethod
    def format_duration(seconds: float) -> str:
        """Format a duration like "12.3s", "2m 30s" or "1h 2m"."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        if seconds < 3600:
            return f"{int(seconds // 60)}m {int(seconds % 60)}s"
        return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"

    def get_updates(self) -> list[ProgressUpdate]:
        """Return a copy of all recorded updates."""
        return list(self.updates)

    def _record(self, stage: ProgressStage, message: str) -> None:
        update = ProgressUpdate(
            stage=stage, message=message, timestamp=time.time(), phase=self.phase
        )
        self.updates.append(update)
        if self.quiet:
            return
        symbols = self.SYMBOLS if self.use_unicode else self.ASCII_SYMBOLS
        print(f"{symbols[stage]} {message}", file=self.output_file, flush=True)


__all__ = ["ProgressDisplay", "ProgressStage", "ProgressUpdate"]
