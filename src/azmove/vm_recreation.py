"""VM recreation module.

Captures the VM configuration that has to survive deletion (size, tags,
OS type, network interface, disk layout), deletes the original VM object and
recreates it in the target zone around the replacement disks.

Deleting the VM is the point of no return. Everything recreate() needs is
captured by capture() and checked before delete_original() runs; a failure
after deletion leaves the VM gone and requires restoring from the vault
backup or finishing the steps by hand.
"""

import logging
from typing import Any

from azmove.az_client import AzureControlPlane
from azmove.errors import PreflightError, RemoteOperationError
from azmove.models import DiskDescriptor, MigrationRequest, VmSnapshot
from azmove.tag_manager import TagManager

logger = logging.getLogger(__name__)


class VMRecreationManager:
    """Capture, delete and recreate a VM in another availability zone."""

    def __init__(self, client: AzureControlPlane):
        self.client = client

    def capture(self, request: MigrationRequest) -> VmSnapshot:
        """Capture the configuration needed to recreate the VM.

        Args:
            request: Migration parameters

        Returns:
            Complete VmSnapshot

        Raises:
            PreflightError: If the VM cannot be read, a required attribute is
                missing, the disks are unsupported, or the VM is already in
                the target zone
        """
        logger.info(f"Capturing configuration of VM {request.vm_name}...")
        try:
            vm = self.client.show_vm(request.resource_group, request.vm_name)
        except RemoteOperationError as e:
            if e.not_found:
                raise PreflightError(
                    f"VM '{request.vm_name}' not found in resource group '{request.resource_group}'"
                ) from e
            raise PreflightError(f"Failed to get VM information: {e.stderr or e.message}") from e

        if not vm:
            raise PreflightError(f"Azure returned no data for VM {request.vm_name}")

        vm_size = (vm.get("hardwareProfile") or {}).get("vmSize")
        if not vm_size:
            raise PreflightError("Could not determine the VM size for the original VM")

        storage_profile = vm.get("storageProfile") or {}
        os_disk = storage_profile.get("osDisk") or {}
        os_disk_name = os_disk.get("name")
        if not os_disk_name:
            raise PreflightError("Failed to get OS disk information")
        self._check_supported_disk(os_disk, os_disk_name)

        data_disk_names: list[str] = []
        data_disk_luns: dict[str, int] = {}
        for data_disk in storage_profile.get("dataDisks") or []:
            name = data_disk.get("name")
            if not name:
                raise PreflightError("Failed to get data disks information")
            self._check_supported_disk(data_disk, name)
            data_disk_names.append(name)
            if data_disk.get("lun") is not None:
                data_disk_luns[name] = int(data_disk["lun"])

        nic_index, nic = self._primary_nic(vm)
        nic_id = nic.get("id")
        if not nic_id:
            raise PreflightError("Failed to get NIC information")

        tags = vm.get("tags")
        if tags is None:
            tags = {}
        if not isinstance(tags, dict):
            raise PreflightError("Could not capture the tags for the original VM")

        os_type = os_disk.get("osType") or self._os_type_from_disk(request, os_disk_name)
        if not os_type:
            raise PreflightError(f"Failed to determine OS type for OS disk {os_disk_name}")

        zones = [str(zone) for zone in vm.get("zones") or []]
        if request.target_zone in zones:
            raise PreflightError(
                f"VM {request.vm_name} is already in availability zone {request.target_zone}"
            )

        snapshot = VmSnapshot(
            vm_name=vm.get("name") or request.vm_name,
            vm_size=vm_size,
            os_type=os_type,
            network_interface_id=nic_id,
            os_disk_name=os_disk_name,
            tags={str(key): "" if value is None else str(value) for key, value in tags.items()},
            data_disk_names=data_disk_names,
            data_disk_luns=data_disk_luns,
            zones=zones,
            nic_index=nic_index,
            nic_delete_option=nic.get("deleteOption"),
        )
        logger.info(
            f"Captured VM {snapshot.vm_name}: size {snapshot.vm_size}, OS {snapshot.os_type}, "
            f"{len(snapshot.data_disk_names)} data disk(s), {len(snapshot.tags)} tag(s)"
        )
        return snapshot

    def recreate(
        self,
        vm_snapshot: VmSnapshot,
        request: MigrationRequest,
        new_os_disk: str,
        new_data_disks: list[DiskDescriptor],
    ) -> None:
        """Delete the original VM and recreate it in the target zone.

        Args:
            vm_snapshot: Configuration captured by capture()
            request: Migration parameters
            new_os_disk: Replacement OS disk name
            new_data_disks: Replacement data disks, in original order

        Raises:
            PreflightError: If vm_snapshot is incomplete (nothing deleted)
            RemoteOperationError: If deletion, creation or an attach fails
        """
        self.delete_original(vm_snapshot, request)
        self.create_vm(vm_snapshot, request, new_os_disk)
        self.attach_data_disks(vm_snapshot, request, new_data_disks)

    def delete_original(self, vm_snapshot: VmSnapshot, request: MigrationRequest) -> None:
        """Delete the original VM object. Its disks and NIC are kept."""
        missing = vm_snapshot.missing_fields()
        if missing:
            raise PreflightError(
                f"Refusing to delete VM {request.vm_name}: captured configuration "
                f"is missing {', '.join(missing)}"
            )

        if vm_snapshot.nic_deleted_with_vm:
            # az vm delete would take the NIC with it
            logger.info(
                f"Setting deleteOption=Detach on NIC {vm_snapshot.network_interface_id} "
                "so it survives the VM deletion..."
            )
            try:
                self.client.detach_nic_on_delete(
                    request.resource_group, request.vm_name, vm_snapshot.nic_index
                )
            except RemoteOperationError as e:
                raise RemoteOperationError.wrap(
                    f"Failed to keep the NIC of VM {request.vm_name} across deletion", e
                ) from e

        logger.info(f"Deleting the original VM {request.vm_name}...")
        try:
            self.client.delete_vm(request.resource_group, request.vm_name)
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap(
                f"Failed to delete the original VM {request.vm_name}", e
            ) from e

    def create_vm(
        self, vm_snapshot: VmSnapshot, request: MigrationRequest, new_os_disk: str
    ) -> None:
        """Create the VM around the replacement OS disk and the original NIC."""
        tag_arguments = TagManager.format_tag_arguments(vm_snapshot.tags)
        logger.info(
            f"Recreating VM {request.vm_name} in availability zone {request.target_zone}..."
        )
        try:
            self.client.create_vm(
                resource_group=request.resource_group,
                vm_name=request.vm_name,
                location=request.location,
                zone=request.target_zone,
                os_disk=new_os_disk,
                nic_id=vm_snapshot.network_interface_id,
                os_type=vm_snapshot.os_type,
                vm_size=vm_snapshot.vm_size,
                tags=tag_arguments,
            )
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap(
                f"Failed to recreate the VM in availability zone {request.target_zone}", e
            ) from e

    def attach_data_disks(
        self,
        vm_snapshot: VmSnapshot,
        request: MigrationRequest,
        new_data_disks: list[DiskDescriptor],
    ) -> None:
        """Attach replacement data disks in their original order and LUNs."""
        for descriptor in new_data_disks:
            lun = descriptor.lun
            if lun is None:
                lun = vm_snapshot.data_disk_luns.get(descriptor.name)
            logger.info(f"Attaching data disk: {descriptor.new_disk_name}...")
            try:
                self.client.attach_disk(
                    request.resource_group, request.vm_name, descriptor.new_disk_name, lun=lun
                )
            except RemoteOperationError as e:
                raise RemoteOperationError.wrap(
                    f"Failed to attach data disk: {descriptor.new_disk_name}", e
                ) from e

    def _os_type_from_disk(self, request: MigrationRequest, disk_name: str) -> str | None:
        try:
            return self.client.show_disk(request.resource_group, disk_name).get("osType")
        except RemoteOperationError as e:
            raise PreflightError(
                f"Could not read OS disk {disk_name}: {e.stderr or e.message}"
            ) from e

    @staticmethod
    def _primary_nic(vm: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        nics = (vm.get("networkProfile") or {}).get("networkInterfaces") or []
        for index, nic in enumerate(nics):
            if nic.get("primary"):
                return index, nic
        return 0, (nics[0] if nics else {})

    @staticmethod
    def _check_supported_disk(disk: dict[str, Any], name: str) -> None:
        """Reject disks a snapshot-based move cannot carry."""
        if disk.get("diffDiskSettings"):
            raise PreflightError(f"Disk {name} is an ephemeral OS disk, which cannot be migrated")
        if disk.get("vhd"):
            raise PreflightError(f"Disk {name} is not a managed disk")
        sku = ((disk.get("managedDisk") or {}).get("storageAccountType") or "").lower()
        if sku.startswith("ultrassd"):
            raise PreflightError(f"Disk {name} is an Ultra disk, which cannot be snapshotted")


__all__ = ["VMRecreationManager"]
