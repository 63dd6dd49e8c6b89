"""Standardized Azure CLI subprocess execution.

Provides run_az_command() and run_az_json() - thin wrappers around
subprocess.run that translate failures into the azmove error taxonomy.

Every command runs exactly once. A migration mutates remote state, so a
failed create/delete/attach is surfaced immediately instead of retried.

Usage:
    from azmove.azure_cli_executor import run_az_json

    vm = run_az_json(["az", "vm", "show", "--resource-group", rg, "--name", name])
"""

import json
import logging
import subprocess
from typing import Any

from azmove.errors import OperationTimeoutError, RemoteOperationError
from azmove.poll_config import get_poll_config

logger = logging.getLogger(__name__)


def run_az_command(
    cmd: list[str],
    *,
    timeout: int | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute an Azure CLI command once.

    Args:
        cmd: Command list starting with "az", e.g. ["az", "vm", "list"]
        timeout: Subprocess timeout in seconds (default: from PollConfig)

    Returns:
        subprocess.CompletedProcess with stdout/stderr

    Raises:
        RemoteOperationError: On non-zero exit or missing az executable
        OperationTimeoutError: If the command does not finish in time
    """
    timeout = timeout or get_poll_config().command_timeout
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as e:
        raise OperationTimeoutError(
            f"Command timed out after {timeout}s: {' '.join(cmd[:3])}",
            waited_seconds=float(timeout),
        ) from e
    except FileNotFoundError as e:
        raise RemoteOperationError(
            "Azure CLI (az) not found. Install it from https://aka.ms/installazurecli",
            command=cmd,
        ) from e

    if result.returncode != 0:
        error_msg = result.stderr.strip()
        logger.debug(f"Command failed ({result.returncode}): {error_msg}")
        raise RemoteOperationError(
            f"Command failed: {' '.join(cmd[:3])}: {error_msg}",
            command=cmd,
            stderr=error_msg,
            returncode=result.returncode,
        )

    return result


def run_az_json(cmd: list[str], *, timeout: int | None = None) -> Any:
    """Execute an Azure CLI command and parse its JSON output.

    "--output json" is appended when the command does not choose a format.
    Empty output yields None.

    Raises:
        RemoteOperationError: On failure or unparseable output
        OperationTimeoutError: If the command does not finish in time
    """
    if "--output" not in cmd and "-o" not in cmd:
        cmd = [*cmd, "--output", "json"]

    result = run_az_command(cmd, timeout=timeout)
    stdout = result.stdout.strip()
    if not stdout:
        return None

    try:
        return json.loads(stdout)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Azure CLI output: {e}")
        raise RemoteOperationError(
            f"Failed to parse output of {' '.join(cmd[:3])}: {e}", command=cmd
        ) from e


__all__ = ["run_az_command", "run_az_json"]
