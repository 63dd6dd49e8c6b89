"""Pytest configuration and fixtures for azmove tests.

CRITICAL: Protects the operator's configuration and keeps tests away from the real az CLI.
"""

import shutil
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.azmove/config.toml from being modified by tests.

    This fixture:
    1. Backs up the real config.toml before any tests run
    2. Restores it after all tests complete
    """
    config_path = Path.home() / ".azmove" / "config.toml"
    backup_path = Path.home() / ".azmove" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)
        print(f"\n[PYTEST] Protected config.toml - backup at {backup_path}")

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
        print("\n[PYTEST] Restored config.toml from backup")
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(autouse=True)
def block_real_az_calls():
    """Fail any test that would reach the real Azure CLI.

    Tests that exercise the executor patch subprocess.run themselves; that
    patch takes precedence over this one.
    """

    def refuse(cmd, *args, **kwargs):
        raise RuntimeError(f"Test attempted a real command: {' '.join(map(str, cmd))}")

    with patch("azmove.azure_cli_executor.subprocess.run", side_effect=refuse):
        yield

