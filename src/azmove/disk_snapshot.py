"""Disk snapshot module.

Captures attributes of the VM's managed disks and takes a point-in-time
snapshot of each one. Disks are processed one at a time; the first failure
aborts the migration and snapshots already created are left for manual
cleanup.
"""

import logging
from typing import Any

from azmove.az_client import AzureControlPlane
from azmove.errors import PreflightError, RemoteOperationError
from azmove.models import DiskDescriptor, DiskRole, MigrationRequest
from azmove.poll_config import PollConfig, get_poll_config
from azmove.polling import poll_until

logger = logging.getLogger(__name__)

SUCCEEDED = "Succeeded"
FAILED = "Failed"


def wait_for_provisioning(
    fetch: Any,
    resource_type: str,
    name: str,
    poll_config: PollConfig,
) -> None:
    """Poll a resource until its provisioningState is Succeeded.

    Args:
        fetch: Zero-argument callable returning the resource as a dict
        resource_type: 'snapshot' or 'disk' (for messages)
        name: Resource name (for messages)
        poll_config: Poll configuration

    Raises:
        RemoteOperationError: If provisioning fails
        OperationTimeoutError: If provisioning does not finish in time
    """

    def check() -> bool:
        state = (fetch() or {}).get("provisioningState")
        if state == FAILED:
            raise RemoteOperationError(f"Provisioning of {resource_type} {name} failed")
        return state == SUCCEEDED

    poll_until(
        check,
        description=f"{resource_type} {name} to be created",
        timeout=poll_config.resource_timeout,
        config=poll_config,
    )


class DiskSnapshotManager:
    """Capture disk attributes and snapshot disks."""

    def __init__(self, client: AzureControlPlane, poll_config: PollConfig | None = None):
        self.client = client
        self.poll_config = poll_config or get_poll_config()

    def capture_attributes(
        self,
        disk_name: str,
        role: DiskRole,
        request: MigrationRequest,
        lun: int | None = None,
    ) -> DiskDescriptor:
        """Read the disk's SKU, IOPS and max-shares settings.

        Args:
            disk_name: Managed disk name
            role: OS or data disk
            request: Migration parameters
            lun: Data disk LUN on the original VM

        Returns:
            DiskDescriptor with derived snapshot/replacement names

        Raises:
            PreflightError: If the disk cannot be read or has no SKU
        """
        logger.info(f"Getting attributes for disk {disk_name}...")
        try:
            disk = self.client.show_disk(request.resource_group, disk_name)
        except RemoteOperationError as e:
            raise PreflightError(f"Could not read disk {disk_name}: {e.stderr or e.message}") from e

        storage_sku = (disk.get("sku") or {}).get("name")
        if not storage_sku:
            raise PreflightError(f"Could not retrieve the storage type for disk {disk_name}")

        cache_setting = disk.get("diskIOPSReadWrite")
        max_shares = disk.get("maxShares")
        logger.info(
            f"Attributes retrieved for {disk_name}: Storage Type: {storage_sku}, "
            f"Cache: {cache_setting}, Max Shares: {max_shares}"
        )

        return DiskDescriptor.for_disk(
            name=disk_name,
            role=role,
            storage_sku=storage_sku,
            target_zone=request.target_zone,
            cache_setting=None if cache_setting is None else str(cache_setting),
            max_shares=max_shares,
            lun=lun,
        )

    def snapshot(
        self,
        descriptor: DiskDescriptor,
        request: MigrationRequest,
        created: list[str] | None = None,
    ) -> str:
        """Snapshot a disk and wait for the snapshot to be created.

        Args:
            descriptor: Disk to snapshot
            request: Migration parameters
            created: Receives the snapshot name as soon as Azure accepts the
                create, before the provisioning wait

        Returns:
            Snapshot name

        Raises:
            RemoteOperationError: If creation fails
            OperationTimeoutError: If creation does not finish in time
        """
        label = "OS disk" if descriptor.role == DiskRole.OS else "data disk"
        logger.info(f"Creating snapshot {descriptor.snapshot_name} of {label} {descriptor.name}...")
        try:
            self.client.create_snapshot(
                request.resource_group,
                descriptor.snapshot_name,
                descriptor.name,
                request.location,
            )
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap(
                f"Failed to create {label} snapshot: {descriptor.name}", e
            ) from e
        if created is not None:
            created.append(descriptor.snapshot_name)

        wait_for_provisioning(
            lambda: self.client.show_snapshot(request.resource_group, descriptor.snapshot_name),
            "snapshot",
            descriptor.snapshot_name,
            self.poll_config,
        )
        logger.info(f"Snapshot {descriptor.snapshot_name} created")
        return descriptor.snapshot_name

    def snapshot_all(
        self,
        descriptors: list[DiskDescriptor],
        request: MigrationRequest,
        created: list[str] | None = None,
    ) -> list[str]:
        """Snapshot disks in order, stopping at the first failure."""
        return [self.snapshot(descriptor, request, created) for descriptor in descriptors]


__all__ = ["DiskSnapshotManager", "wait_for_provisioning"]
