"""Records threaded through each migration stage.

All records are transient and scoped to a single migration run. Names of
snapshots and replacement disks are derived deterministically from the
original disk name so every stage (and an operator cleaning up by hand) can
recompute them.
"""

from dataclasses import dataclass, field
from enum import Enum


def snapshot_name_for(disk_name: str) -> str:
    """Snapshot name for a disk: {disk_name}-snapshot."""
    return f"{disk_name}-snapshot"


def new_disk_name_for(disk_name: str, target_zone: str) -> str:
    """Replacement disk name for a disk: {disk_name}-az-{target_zone}."""
    return f"{disk_name}-az-{target_zone}"


@dataclass(frozen=True)
class MigrationRequest:
    """Validated parameters for one migration."""

    resource_group: str
    vm_name: str
    target_zone: str
    location: str
    vault_name: str


class DiskRole(Enum):
    """Role of a disk on the VM."""

    OS = "os"
    DATA = "data"


@dataclass
class DiskDescriptor:
    """Attributes captured for one managed disk.

    cache_setting holds the disk's diskIOPSReadWrite value. It and max_shares
    are recorded for the operator but not reapplied to the replacement disk.
    """

    name: str
    role: DiskRole
    storage_sku: str
    snapshot_name: str
    new_disk_name: str
    cache_setting: str | None = None
    max_shares: int | None = None
    lun: int | None = None

    @classmethod
    def for_disk(
        cls,
        name: str,
        role: DiskRole,
        storage_sku: str,
        target_zone: str,
        cache_setting: str | None = None,
        max_shares: int | None = None,
        lun: int | None = None,
    ) -> "DiskDescriptor":
        """Build a descriptor with derived snapshot and replacement names."""
        return cls(
            name=name,
            role=role,
            storage_sku=storage_sku,
            snapshot_name=snapshot_name_for(name),
            new_disk_name=new_disk_name_for(name, target_zone),
            cache_setting=cache_setting,
            max_shares=max_shares,
            lun=lun,
        )


@dataclass
class VmSnapshot:
    """VM configuration captured before the original VM is deleted."""

    vm_name: str
    vm_size: str
    os_type: str
    network_interface_id: str
    os_disk_name: str
    tags: dict[str, str] = field(default_factory=dict)
    data_disk_names: list[str] = field(default_factory=list)
    data_disk_luns: dict[str, int] = field(default_factory=dict)
    zones: list[str] = field(default_factory=list)
    nic_index: int = 0
    nic_delete_option: str | None = None

    @property
    def nic_deleted_with_vm(self) -> bool:
        """True when deleting the VM would also delete its network interface."""
        return (self.nic_delete_option or "").lower() == "delete"

    @property
    def is_complete(self) -> bool:
        """Check that everything needed to recreate the VM was captured."""
        return all(
            [
                self.vm_name,
                self.vm_size,
                self.os_type,
                self.network_interface_id,
                self.os_disk_name,
            ]
        )

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        required = {
            "vm_name": self.vm_name,
            "vm_size": self.vm_size,
            "os_type": self.os_type,
            "network_interface_id": self.network_interface_id,
            "os_disk_name": self.os_disk_name,
        }
        return [name for name, value in required.items() if not value]


class BackupJobStatus(Enum):
    """Status of an on-demand backup job, as far as azmove tracks it."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BackupJob:
    """On-demand backup job tracked until its snapshot task completes."""

    job_id: str
    status: BackupJobStatus = BackupJobStatus.RUNNING
    snapshot_task_status: str | None = None


@dataclass
class CleanupWarning:
    """A non-fatal failure while deleting an old disk or snapshot."""

    resource_type: str  # 'snapshot' or 'disk'
    resource_name: str
    message: str

    def __str__(self) -> str:
        return f"Failed to delete {self.resource_type} '{self.resource_name}': {self.message}"


class MigrationPhase(Enum):
    """Stages of a migration, in execution order."""

    VALIDATE = "validate"
    PREFLIGHT = "preflight"
    BACKUP = "backup"
    SNAPSHOT = "snapshot"
    DISK_CREATE = "disk-create"
    VM_DELETE = "vm-delete"
    VM_CREATE = "vm-create"
    DATA_DISK_ATTACH = "data-disk-attach"
    CLEANUP = "cleanup"
    COMPLETE = "complete"

    @property
    def original_vm_deleted(self) -> bool:
        """True when a failure in this phase happens after the original VM is gone."""
        return self in (
            MigrationPhase.VM_CREATE,
            MigrationPhase.DATA_DISK_ATTACH,
            MigrationPhase.CLEANUP,
            MigrationPhase.COMPLETE,
        )


@dataclass
class MigrationResult:
    """Outcome of a successful migration."""

    request: MigrationRequest
    vm_snapshot: VmSnapshot
    backup_job: BackupJob
    os_disk: DiskDescriptor
    data_disks: list[DiskDescriptor] = field(default_factory=list)
    cleanup_warnings: list[CleanupWarning] = field(default_factory=list)

    @property
    def new_os_disk_name(self) -> str:
        return self.os_disk.new_disk_name

    @property
    def new_data_disk_names(self) -> list[str]:
        return [disk.new_disk_name for disk in self.data_disks]

    @property
    def has_warnings(self) -> bool:
        """Check if cleanup left anything behind."""
        return bool(self.cleanup_warnings)


__all__ = [
    "BackupJob",
    "BackupJobStatus",
    "CleanupWarning",
    "DiskDescriptor",
    "DiskRole",
    "MigrationPhase",
    "MigrationRequest",
    "MigrationResult",
    "VmSnapshot",
    "new_disk_name_for",
    "snapshot_name_for",
]
