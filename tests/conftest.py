"""
Shared test fixtures for azmove tests.

This module provides common fixtures used across all test types:
- A validated MigrationRequest for the rg1/vm1 scenario
- A fast PollConfig (no real waiting)
- An in-memory fake of the Azure control plane
- Isolated config files
"""

from unittest.mock import patch

import pytest

from azmove.config_manager import ConfigManager
from azmove.models import MigrationRequest
from azmove.poll_config import PollConfig, reset_poll_config

from .mocks.azure_mock import FakeControlPlane


@pytest.fixture
def migration_request():
    """The rg1 / vm1 / zone 2 / eastus / vault1 request."""
    return MigrationRequest(
        resource_group="rg1",
        vm_name="vm1",
        target_zone="2",
        location="eastus",
        vault_name="vault1",
    )


@pytest.fixture
def fast_poll_config():
    """PollConfig that never sleeps and gives up quickly."""
    return PollConfig(
        initial_delay=0.0,
        max_delay=0.0,
        jitter_enabled=False,
        deallocate_timeout=5.0,
        backup_snapshot_timeout=5.0,
        resource_timeout=5.0,
        command_timeout=30,
    )


@pytest.fixture
def fake_cloud():
    """FakeControlPlane holding vm1 with OS disk osdisk1 and data disk data1."""
    return FakeControlPlane()


@pytest.fixture
def no_sleep():
    """Patch time.sleep in the polling module."""
    with patch("azmove.polling.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture(autouse=True)
def clean_poll_config():
    """Reload PollConfig from the environment for every test."""
    reset_poll_config()
    yield
    reset_poll_config()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point ConfigManager's default location at tmp_path.

    Example:
        def test_something(isolated_config):
            ConfigManager.save_config(config)  # Writes tmp_path/.azmove/config.toml
    """
    config_dir = tmp_path / ".azmove"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir / "config.toml"
