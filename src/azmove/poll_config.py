"""Configuration for completion polling and command timeouts.

This module provides tunable wait settings for the long-running Azure
operations a migration blocks on.

Design Philosophy:
- Ruthless simplicity: Single configuration dataclass
- Sensible defaults: Works out of the box
- Environment-aware: Can be overridden via env vars
"""

import os
from dataclasses import dataclass


@dataclass
class PollConfig:
    """Polling and timeout settings.

    Every wait is bounded: a stuck Azure operation raises
    OperationTimeoutError instead of blocking forever.
    """

    # Backoff between status checks
    initial_delay: float = 10.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter_enabled: bool = True

    # Deadlines per wait, in seconds
    deallocate_timeout: float = 1800.0
    backup_snapshot_timeout: float = 7200.0
    resource_timeout: float = 3600.0

    # Subprocess timeout for a single az invocation
    command_timeout: int = 1800

    @classmethod
    def from_environment(cls) -> "PollConfig":
        """Load poll configuration from environment variables.

        Environment variables (all optional):
            AZMOVE_POLL_INITIAL_DELAY: First delay between checks (default: 10.0)
            AZMOVE_POLL_MAX_DELAY: Cap on delay between checks (default: 60.0)
            AZMOVE_POLL_MULTIPLIER: Backoff multiplier (default: 2.0)
            AZMOVE_POLL_JITTER_ENABLED: Enable jitter (default: true)
            AZMOVE_DEALLOCATE_TIMEOUT: Deallocation deadline (default: 1800)
            AZMOVE_BACKUP_SNAPSHOT_TIMEOUT: 'Take Snapshot' deadline (default: 7200)
            AZMOVE_RESOURCE_TIMEOUT: Snapshot/disk creation deadline (default: 3600)
            AZMOVE_COMMAND_TIMEOUT: Single az command timeout (default: 1800)

        Returns:
            PollConfig with values from environment or defaults
        """
        return cls(
            initial_delay=float(os.getenv("AZMOVE_POLL_INITIAL_DELAY", "10.0")),
            max_delay=float(os.getenv("AZMOVE_POLL_MAX_DELAY", "60.0")),
            multiplier=float(os.getenv("AZMOVE_POLL_MULTIPLIER", "2.0")),
            jitter_enabled=os.getenv("AZMOVE_POLL_JITTER_ENABLED", "true").lower() == "true",
            deallocate_timeout=float(os.getenv("AZMOVE_DEALLOCATE_TIMEOUT", "1800")),
            backup_snapshot_timeout=float(os.getenv("AZMOVE_BACKUP_SNAPSHOT_TIMEOUT", "7200")),
            resource_timeout=float(os.getenv("AZMOVE_RESOURCE_TIMEOUT", "3600")),
            command_timeout=int(os.getenv("AZMOVE_COMMAND_TIMEOUT", "1800")),
        )


# Global configuration instance (lazily loaded)
_config: PollConfig | None = None


def get_poll_config() -> PollConfig:
    """Get global poll configuration.

    Returns:
        PollConfig instance (loaded from environment on first access)
    """
    global _config
    if _config is None:
        _config = PollConfig.from_environment()
    return _config


def reset_poll_config() -> None:
    """Reset global poll configuration.

    Forces reload from environment on next access.
    """
    global _config
    _config = None


__all__ = ["PollConfig", "get_poll_config", "reset_poll_config"]
