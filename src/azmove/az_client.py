"""Azure control-plane client.

Wraps the az CLI subcommands a zone migration needs: VM, disk, snapshot and
Backup vault operations. Each method issues one command and returns the
parsed JSON response; waiting for completion is left to the caller
(see azmove.polling).

Security:
- No shell=True
- Arguments passed as a list
"""

import logging
from typing import Any

from azmove.azure_cli_executor import run_az_command, run_az_json

logger = logging.getLogger(__name__)

BACKUP_MANAGEMENT_TYPE = "AzureIaasVM"


class AzureControlPlane:
    """Typed access to the Azure operations used by a migration.

    Raises azmove.errors.RemoteOperationError (or OperationTimeoutError) from
    every method when the underlying command fails.
    """

    def __init__(self, command_timeout: int | None = None):
        self.command_timeout = command_timeout

    def _json(self, cmd: list[str]) -> Any:
        return run_az_json(cmd, timeout=self.command_timeout)

    def _run(self, cmd: list[str]) -> None:
        run_az_command(cmd, timeout=self.command_timeout)

    # Account

    def show_account(self) -> dict[str, Any]:
        """Return the signed-in account (az account show)."""
        return self._json(["az", "account", "show"]) or {}

    # Virtual machines

    def show_vm(self, resource_group: str, vm_name: str) -> dict[str, Any]:
        return (
            self._json(["az", "vm", "show", "--resource-group", resource_group, "--name", vm_name])
            or {}
        )

    def get_instance_view(self, resource_group: str, vm_name: str) -> dict[str, Any]:
        return (
            self._json(
                [
                    "az",
                    "vm",
                    "get-instance-view",
                    "--resource-group",
                    resource_group,
                    "--name",
                    vm_name,
                ]
            )
            or {}
        )

    def get_power_state(self, resource_group: str, vm_name: str) -> str | None:
        """Return the VM's PowerState/* status code, if reported."""
        view = self.get_instance_view(resource_group, vm_name)
        statuses = (view.get("instanceView") or {}).get("statuses") or []
        for status in statuses:
            code = status.get("code") or ""
            if code.startswith("PowerState/"):
                return code
        return None

    def deallocate_vm(self, resource_group: str, vm_name: str) -> None:
        self._run(["az", "vm", "deallocate", "--resource-group", resource_group, "--name", vm_name])

    def detach_nic_on_delete(self, resource_group: str, vm_name: str, nic_index: int) -> None:
        """Set a NIC's deleteOption to Detach so deleting the VM keeps it."""
        self._run(
            [
                "az",
                "vm",
                "update",
                "--resource-group",
                resource_group,
                "--name",
                vm_name,
                "--set",
                f"networkProfile.networkInterfaces[{nic_index}].deleteOption=Detach",
            ]
        )

    def delete_vm(self, resource_group: str, vm_name: str) -> None:
        """Delete the VM object only; its disks and NIC are kept."""
        self._run(
            ["az", "vm", "delete", "--resource-group", resource_group, "--name", vm_name, "--yes"]
        )

    def create_vm(
        self,
        resource_group: str,
        vm_name: str,
        location: str,
        zone: str,
        os_disk: str,
        nic_id: str,
        os_type: str,
        vm_size: str,
        tags: list[str],
    ) -> dict[str, Any]:
        """Create a VM around an existing OS disk and NIC.

        Args:
            tags: Pre-formatted "key=value" strings (may be empty)
        """
        cmd = [
            "az",
            "vm",
            "create",
            "--resource-group",
            resource_group,
            "--name",
            vm_name,
            "--location",
            location,
            "--zone",
            zone,
            "--attach-os-disk",
            os_disk,
            "--nics",
            nic_id,
            "--os-type",
            os_type,
            "--size",
            vm_size,
        ]
        if tags:
            cmd.extend(["--tags", *tags])
        return self._json(cmd) or {}

    def attach_disk(
        self, resource_group: str, vm_name: str, disk_name: str, lun: int | None = None
    ) -> None:
        cmd = [
            "az",
            "vm",
            "disk",
            "attach",
            "--resource-group",
            resource_group,
            "--vm-name",
            vm_name,
            "--name",
            disk_name,
        ]
        if lun is not None:
            cmd.extend(["--lun", str(lun)])
        self._run(cmd)

    # Backup vault

    def backup_now(
        self, resource_group: str, vault_name: str, vm_name: str, retain_until: str
    ) -> dict[str, Any]:
        """Submit an on-demand backup and return the job resource.

        Args:
            retain_until: Retention date formatted dd-mm-YYYY
        """
        return (
            self._json(
                [
                    "az",
                    "backup",
                    "protection",
                    "backup-now",
                    "--resource-group",
                    resource_group,
                    "--vault-name",
                    vault_name,
                    "--container-name",
                    vm_name,
                    "--item-name",
                    vm_name,
                    "--backup-management-type",
                    BACKUP_MANAGEMENT_TYPE,
                    "--retain-until",
                    retain_until,
                ]
            )
            or {}
        )

    def show_backup_job(self, resource_group: str, vault_name: str, job_id: str) -> dict[str, Any]:
        return (
            self._json(
                [
                    "az",
                    "backup",
                    "job",
                    "show",
                    "--resource-group",
                    resource_group,
                    "--vault-name",
                    vault_name,
                    "--name",
                    job_id,
                ]
            )
            or {}
        )

    # Snapshots

    def create_snapshot(
        self, resource_group: str, snapshot_name: str, source_disk: str, location: str
    ) -> dict[str, Any]:
        return (
            self._json(
                [
                    "az",
                    "snapshot",
                    "create",
                    "--resource-group",
                    resource_group,
                    "--name",
                    snapshot_name,
                    "--source",
                    source_disk,
                    "--location",
                    location,
                ]
            )
            or {}
        )

    def show_snapshot(self, resource_group: str, snapshot_name: str) -> dict[str, Any]:
        cmd = ["az", "snapshot", "show", "--resource-group", resource_group]
        return self._json([*cmd, "--name", snapshot_name]) or {}

    def delete_snapshot(self, resource_group: str, snapshot_name: str) -> None:
        cmd = ["az", "snapshot", "delete", "--resource-group", resource_group]
        self._run([*cmd, "--name", snapshot_name])

    # Managed disks

    def show_disk(self, resource_group: str, disk_name: str) -> dict[str, Any]:
        cmd = ["az", "disk", "show", "--resource-group", resource_group, "--name", disk_name]
        return self._json(cmd) or {}

    def create_disk(
        self,
        resource_group: str,
        disk_name: str,
        source: str,
        location: str,
        zone: str,
        sku: str,
    ) -> dict[str, Any]:
        return (
            self._json(
                [
                    "az",
                    "disk",
                    "create",
                    "--resource-group",
                    resource_group,
                    "--name",
                    disk_name,
                    "--source",
                    source,
                    "--location",
                    location,
                    "--zone",
                    zone,
                    "--sku",
                    sku,
                ]
            )
            or {}
        )

    def delete_disk(self, resource_group: str, disk_name: str) -> None:
        self._run(
            [
                "az",
                "disk",
                "delete",
                "--resource-group",
                resource_group,
                "--name",
                disk_name,
                "--yes",
            ]
        )


__all__ = ["BACKUP_MANAGEMENT_TYPE", "AzureControlPlane"]
