"""Disk recreation module.

Creates a replacement managed disk from each snapshot, placed in the target
availability zone with the original storage SKU.
"""

import logging

from azmove.az_client import AzureControlPlane
from azmove.disk_snapshot import wait_for_provisioning
from azmove.errors import RemoteOperationError
from azmove.models import DiskDescriptor, DiskRole, MigrationRequest
from azmove.poll_config import PollConfig, get_poll_config

logger = logging.getLogger(__name__)


class DiskRecreationManager:
    """Create zonal disks from snapshots."""

    def __init__(self, client: AzureControlPlane, poll_config: PollConfig | None = None):
        self.client = client
        self.poll_config = poll_config or get_poll_config()

    def recreate(
        self,
        descriptor: DiskDescriptor,
        request: MigrationRequest,
        created: list[str] | None = None,
    ) -> str:
        """Create the replacement disk for a snapshotted disk.

        Only the storage SKU is carried over. The cache setting and
        max-shares captured for the original disk are left at provider
        defaults.

        Args:
            descriptor: Disk whose snapshot to restore
            request: Migration parameters (target zone and location)
            created: Receives the new disk name once the create is accepted

        Returns:
            Name of the new disk

        Raises:
            RemoteOperationError: If creation fails
            OperationTimeoutError: If creation does not finish in time
        """
        label = "OS disk" if descriptor.role == DiskRole.OS else "data disk"
        logger.info(
            f"Creating {label} {descriptor.new_disk_name} in zone {request.target_zone} "
            f"from {descriptor.snapshot_name}..."
        )
        if descriptor.max_shares not in (None, 1):
            logger.info(
                f"Disk {descriptor.name} had maxShares={descriptor.max_shares}; "
                f"{descriptor.new_disk_name} is created with the provider default"
            )

        try:
            self.client.create_disk(
                request.resource_group,
                descriptor.new_disk_name,
                descriptor.snapshot_name,
                request.location,
                request.target_zone,
                descriptor.storage_sku,
            )
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap(
                f"Failed to create {label}: {descriptor.name}", e
            ) from e
        if created is not None:
            created.append(descriptor.new_disk_name)

        wait_for_provisioning(
            lambda: self.client.show_disk(request.resource_group, descriptor.new_disk_name),
            "disk",
            descriptor.new_disk_name,
            self.poll_config,
        )
        logger.info(f"Disk {descriptor.new_disk_name} created")
        return descriptor.new_disk_name

    def recreate_all(
        self,
        descriptors: list[DiskDescriptor],
        request: MigrationRequest,
        created: list[str] | None = None,
    ) -> list[str]:
        """Recreate disks in order, stopping at the first failure."""
        return [self.recreate(descriptor, request, created) for descriptor in descriptors]


__all__ = ["DiskRecreationManager"]
