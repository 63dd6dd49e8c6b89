"""Zone migration orchestration.

Coordinates the stages of moving one VM into another availability zone:

1. Preflight: account check, capture VM configuration and disk attributes
2. Backup: deallocate, on-demand vault backup, wait for its snapshot task
3. Snapshot: OS disk, then each data disk
4. Disk create: replacement disks in the target zone
5. VM delete: the point of no return
6. VM create: same name, size, tags and NIC, around the new OS disk
7. Data disk attach: in original order
8. Cleanup: old snapshots and disks (best effort)

Stages run strictly in sequence and every failure before cleanup aborts the
run. Errors leaving the orchestrator are annotated with the phase reached
and whether the original VM had already been deleted.

Example:
    >>> orchestrator = ZoneMigrationOrchestrator()
    >>> result = orchestrator.run(validate_request("rg1", "vm1", "2", "eastus", "vault1"))
    >>> result.new_os_disk_name
    'vm1_OsDisk_1-az-2'
"""

import logging

from azmove.az_client import AzureControlPlane
from azmove.backup_coordinator import BackupCoordinator
from azmove.cleanup import CleanupManager
from azmove.disk_recreation import DiskRecreationManager
from azmove.disk_snapshot import DiskSnapshotManager
from azmove.errors import PreflightError, RemoteOperationError, ZoneMigrationError
from azmove.models import (
    BackupJob,
    DiskDescriptor,
    DiskRole,
    MigrationPhase,
    MigrationRequest,
    MigrationResult,
    VmSnapshot,
)
from azmove.poll_config import PollConfig, get_poll_config
from azmove.progress import ProgressDisplay
from azmove.tag_manager import TagManager
from azmove.vm_recreation import VMRecreationManager

logger = logging.getLogger(__name__)


class ZoneMigrationOrchestrator:
    """Run a single VM availability zone migration."""

    def __init__(
        self,
        client: AzureControlPlane | None = None,
        poll_config: PollConfig | None = None,
        retention_days: int = BackupCoordinator.DEFAULT_RETENTION_DAYS,
        progress: ProgressDisplay | None = None,
    ):
        self.poll_config = poll_config or get_poll_config()
        self.client = client or AzureControlPlane(command_timeout=self.poll_config.command_timeout)
        self.progress = progress or ProgressDisplay(quiet=True)

        self.backup_coordinator = BackupCoordinator(self.client, self.poll_config, retention_days)
        self.snapshot_manager = DiskSnapshotManager(self.client, self.poll_config)
        self.disk_manager = DiskRecreationManager(self.client, self.poll_config)
        self.vm_manager = VMRecreationManager(self.client)
        self.cleanup_manager = CleanupManager(self.client)

        self._reset()

    def _reset(self) -> None:
        self.phase = MigrationPhase.VALIDATE
        self.backup_job: BackupJob | None = None
        self.vm_snapshot: VmSnapshot | None = None
        self.created_snapshots: list[str] = []
        self.created_disks: list[str] = []

    @property
    def vm_deleted(self) -> bool:
        return self.phase.original_vm_deleted

    def _enter(self, phase: MigrationPhase, title: str) -> None:
        self.phase = phase
        self.progress.start_phase(phase, title)

    def check_account(self) -> dict:
        """Confirm the Azure CLI is signed in (az account show)."""
        try:
            account = self.client.show_account()
        except RemoteOperationError as e:
            raise PreflightError(
                f"Azure CLI is not authenticated. Run 'az login' first. ({e.stderr or e.message})"
            ) from e
        logger.info(
            f"Using subscription {account.get('name', 'unknown')} ({account.get('id', 'unknown')})"
        )
        return account

    def inspect(
        self, request: MigrationRequest
    ) -> tuple[VmSnapshot, DiskDescriptor, list[DiskDescriptor]]:
        """Capture VM configuration and disk attributes without changing anything.

        Raises:
            PreflightError: If anything needed later cannot be captured
        """
        vm_snapshot = self.vm_manager.capture(request)
        os_disk = self.snapshot_manager.capture_attributes(
            vm_snapshot.os_disk_name, DiskRole.OS, request
        )
        data_disks = [
            self.snapshot_manager.capture_attributes(
                name, DiskRole.DATA, request, lun=vm_snapshot.data_disk_luns.get(name)
            )
            for name in vm_snapshot.data_disk_names
        ]
        return vm_snapshot, os_disk, data_disks

    def plan(
        self,
        request: MigrationRequest,
        vm_snapshot: VmSnapshot,
        os_disk: DiskDescriptor,
        data_disks: list[DiskDescriptor],
    ) -> list[str]:
        """Describe the operations run() would perform, in order."""
        disks = [os_disk, *data_disks]
        steps = [
            f"Deallocate VM {request.vm_name} and wait until it is deallocated",
            f"Start on-demand backup in vault {request.vault_name} and wait for 'Take Snapshot'",
        ]
        steps += [f"Snapshot disk {disk.name} -> {disk.snapshot_name}" for disk in disks]
        steps += [
            f"Create disk {disk.new_disk_name} ({disk.storage_sku}) in zone {request.target_zone}"
            for disk in disks
        ]
        if vm_snapshot.nic_deleted_with_vm:
            steps.append(
                f"Set deleteOption=Detach on NIC {vm_snapshot.network_interface_id} "
                "so it is kept"
            )
        steps.append(f"Delete VM {request.vm_name} (disks and NIC are kept)")
        tags = TagManager.format_tag_arguments(vm_snapshot.tags)
        steps.append(
            f"Create VM {request.vm_name} ({vm_snapshot.vm_size}, {vm_snapshot.os_type}) in zone "
            f"{request.target_zone} on {os_disk.new_disk_name} with {len(tags)} tag(s)"
        )
        steps += [f"Attach data disk {disk.new_disk_name}" for disk in data_disks]
        for disk in data_disks:
            steps.append(f"Delete snapshot {disk.snapshot_name}")
        for disk in data_disks:
            steps.append(f"Delete disk {disk.name}")
        steps.append(f"Delete snapshot {os_disk.snapshot_name}")
        steps.append(f"Delete disk {os_disk.name}")
        return steps

    def run(self, request: MigrationRequest) -> MigrationResult:
        """Migrate the VM described by request to its target zone.

        Returns:
            MigrationResult (cleanup warnings do not make a run fail)

        Raises:
            ZoneMigrationError: On any fatal failure, annotated with phase
                and original_vm_deleted
        """
        self._reset()
        logger.info(
            f"Starting availability zone migration of {request.vm_name} "
            f"to zone {request.target_zone}"
        )

        try:
            self._enter(MigrationPhase.PREFLIGHT, "Inspecting VM configuration")
            self.check_account()
            vm_snapshot, os_disk, data_disks = self.inspect(request)
            self.vm_snapshot = vm_snapshot
            self.progress.finish_phase()

            self._enter(MigrationPhase.BACKUP, "Backing up VM to vault")
            backup_job = self.backup_coordinator.run_backup(request)
            self.backup_job = backup_job
            self.progress.finish_phase()

            self._enter(MigrationPhase.SNAPSHOT, "Snapshotting disks")
            self.snapshot_manager.snapshot_all(
                [os_disk, *data_disks], request, created=self.created_snapshots
            )
            self.progress.finish_phase()

            self._enter(MigrationPhase.DISK_CREATE, f"Creating disks in zone {request.target_zone}")
            self.disk_manager.recreate_all(
                [os_disk, *data_disks], request, created=self.created_disks
            )
            self.progress.finish_phase()

            self._enter(MigrationPhase.VM_DELETE, f"Deleting original VM {request.vm_name}")
            self.vm_manager.delete_original(vm_snapshot, request)
            self.progress.finish_phase()

            self._enter(MigrationPhase.VM_CREATE, f"Recreating VM in zone {request.target_zone}")
            self.vm_manager.create_vm(vm_snapshot, request, os_disk.new_disk_name)
            self.progress.finish_phase()

            if data_disks:
                self._enter(MigrationPhase.DATA_DISK_ATTACH, "Attaching data disks")
                self.vm_manager.attach_data_disks(vm_snapshot, request, data_disks)
                self.progress.finish_phase()
        except ZoneMigrationError as e:
            e.phase = self.phase
            e.original_vm_deleted = self.vm_deleted
            self.progress.finish_phase(
                success=False, message=f"{self.phase.value} failed: {e.message}"
            )
            for line in self.recovery_guidance(request):
                logger.error(line)
            raise

        logger.info(
            f"The VM has been successfully recreated in availability zone {request.target_zone}"
        )

        self._enter(MigrationPhase.CLEANUP, "Cleaning up old disks and snapshots")
        warnings = self.cleanup_manager.cleanup(os_disk, data_disks, request)
        for warning in warnings:
            self.progress.warn(str(warning))
        self.progress.finish_phase(success=True)

        self.phase = MigrationPhase.COMPLETE
        logger.info(
            f"The VM {request.vm_name} has been successfully migrated to "
            f"availability zone {request.target_zone}"
        )
        return MigrationResult(
            request=request,
            vm_snapshot=vm_snapshot,
            backup_job=backup_job,
            os_disk=os_disk,
            data_disks=data_disks,
            cleanup_warnings=warnings,
        )

    def recovery_guidance(self, request: MigrationRequest) -> list[str]:
        """Operator instructions for the state a failed run left behind."""
        lines: list[str] = []
        if not self.vm_deleted:
            lines.append(f"The original VM {request.vm_name} has not been deleted.")
            if self.phase != MigrationPhase.PREFLIGHT:
                lines.append("It may still be deallocated; start it with 'az vm start' if needed.")
        else:
            lines.append(
                f"The original VM {request.vm_name} has been DELETED and was not fully recreated."
            )
            if self.backup_job:
                lines.append(
                    f"Restore it from backup job {self.backup_job.job_id} in vault "
                    f"{request.vault_name}, or finish the recreation by hand."
                )
            if self.vm_snapshot:
                lines.append(
                    f"Original configuration: size {self.vm_snapshot.vm_size}, "
                    f"OS {self.vm_snapshot.os_type}, NIC {self.vm_snapshot.network_interface_id}"
                )
        if self.created_snapshots:
            lines.append(f"Snapshots created by this run: {', '.join(self.created_snapshots)}")
        if self.created_disks:
            lines.append(f"Disks created by this run: {', '.join(self.created_disks)}")
        return lines


__all__ = ["ZoneMigrationOrchestrator"]
