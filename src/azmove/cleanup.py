"""Post-migration cleanup of old disks and snapshots.

Runs only after the VM has been recreated. Nothing the migrated VM depends
on is touched, so every failure here is reported as a CleanupWarning and
the migration still counts as successful.

Order:
1. Data disk snapshots
2. Old data disks
3. OS disk snapshot
4. Old OS disk
"""

import logging

from azmove.az_client import AzureControlPlane
from azmove.errors import ZoneMigrationError
from azmove.models import CleanupWarning, DiskDescriptor, MigrationRequest

logger = logging.getLogger(__name__)


class CleanupManager:
    """Best-effort deletion of resources left over by a migration."""

    def __init__(self, client: AzureControlPlane):
        self.client = client

    def cleanup(
        self,
        os_disk: DiskDescriptor,
        data_disks: list[DiskDescriptor],
        request: MigrationRequest,
    ) -> list[CleanupWarning]:
        """Delete old snapshots and disks.

        Args:
            os_disk: Original OS disk descriptor
            data_disks: Original data disk descriptors
            request: Migration parameters

        Returns:
            One CleanupWarning per deletion that failed (empty on success)
        """
        warnings: list[CleanupWarning] = []

        if data_disks:
            logger.info("Deleting old data disk snapshots...")
        for descriptor in data_disks:
            self._delete("snapshot", descriptor.snapshot_name, request, warnings)

        if data_disks:
            logger.info("Deleting old data disks...")
        for descriptor in data_disks:
            self._delete("disk", descriptor.name, request, warnings)

        logger.info("Deleting snapshot for the old OS disk...")
        self._delete("snapshot", os_disk.snapshot_name, request, warnings)

        logger.info("Deleting the old OS disk...")
        self._delete("disk", os_disk.name, request, warnings)

        if warnings:
            logger.warning(f"Cleanup finished with {len(warnings)} warning(s)")
        else:
            logger.info("The old disks and snapshots have been successfully deleted")
        return warnings

    def _delete(
        self,
        resource_type: str,
        name: str,
        request: MigrationRequest,
        warnings: list[CleanupWarning],
    ) -> None:
        try:
            if resource_type == "snapshot":
                self.client.delete_snapshot(request.resource_group, name)
            else:
                self.client.delete_disk(request.resource_group, name)
        except ZoneMigrationError as e:
            warning = CleanupWarning(
                resource_type=resource_type, resource_name=name, message=e.message
            )
            logger.warning(str(warning))
            warnings.append(warning)


__all__ = ["CleanupManager"]
