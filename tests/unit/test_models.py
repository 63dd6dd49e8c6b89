"""Unit tests for models module."""

from azmove.models import (
    BackupJob,
    BackupJobStatus,
    CleanupWarning,
    DiskDescriptor,
    DiskRole,
    MigrationPhase,
    MigrationRequest,
    MigrationResult,
    VmSnapshot,
    new_disk_name_for,
    snapshot_name_for,
)


def make_vm_snapshot(**overrides):
    values = {
        "vm_name": "vm1",
        "vm_size": "Standard_D2s_v3",
        "os_type": "Linux",
        "network_interface_id": "/subscriptions/x/networkInterfaces/vm1-nic",
        "os_disk_name": "osdisk1",
    }
    values.update(overrides)
    return VmSnapshot(**values)


class TestDerivedNames:
    """Tests for deterministic snapshot and disk names."""

    def test_snapshot_name(self):
        assert snapshot_name_for("osdisk1") == "osdisk1-snapshot"

    def test_new_disk_name(self):
        assert new_disk_name_for("data1", "2") == "data1-az-2"

    def test_descriptor_derives_names_for_os_disk(self):
        descriptor = DiskDescriptor.for_disk("osdisk1", DiskRole.OS, "Premium_LRS", "2")
        assert descriptor.snapshot_name == "osdisk1-snapshot"
        assert descriptor.new_disk_name == "osdisk1-az-2"
        assert descriptor.lun is None

    def test_descriptor_derives_names_for_data_disks(self):
        for name in ["data1", "data-disk_2", "logs.disk"]:
            descriptor = DiskDescriptor.for_disk(name, DiskRole.DATA, "StandardSSD_LRS", "3", lun=1)
            assert descriptor.snapshot_name == f"{name}-snapshot"
            assert descriptor.new_disk_name == f"{name}-az-3"
            assert descriptor.lun == 1


class TestMigrationRequest:
    """Tests for MigrationRequest."""

    def test_request_is_immutable(self):
        request = MigrationRequest("rg1", "vm1", "2", "eastus", "vault1")
        try:
            request.vm_name = "other"  # type: ignore[misc]
        except AttributeError:
            pass
        else:
            raise AssertionError("MigrationRequest should be frozen")
        assert request.vm_name == "vm1"


class TestVmSnapshot:
    """Tests for VmSnapshot completeness checks."""

    def test_complete_snapshot(self):
        snapshot = make_vm_snapshot()
        assert snapshot.is_complete
        assert snapshot.missing_fields() == []

    def test_missing_size_is_incomplete(self):
        snapshot = make_vm_snapshot(vm_size="")
        assert not snapshot.is_complete
        assert snapshot.missing_fields() == ["vm_size"]

    def test_lists_every_missing_field(self):
        snapshot = make_vm_snapshot(os_type="", network_interface_id="")
        assert snapshot.missing_fields() == ["os_type", "network_interface_id"]

    def test_defaults_are_independent(self):
        first = make_vm_snapshot()
        second = make_vm_snapshot()
        first.data_disk_names.append("data1")
        assert second.data_disk_names == []


class TestMigrationPhase:
    """Tests for MigrationPhase."""

    def test_phases_before_deletion_keep_vm(self):
        for phase in [
            MigrationPhase.PREFLIGHT,
            MigrationPhase.BACKUP,
            MigrationPhase.SNAPSHOT,
            MigrationPhase.DISK_CREATE,
            MigrationPhase.VM_DELETE,
        ]:
            assert not phase.original_vm_deleted

    def test_phases_after_deletion(self):
        assert MigrationPhase.VM_CREATE.original_vm_deleted
        assert MigrationPhase.DATA_DISK_ATTACH.original_vm_deleted


class TestMigrationResult:
    """Tests for MigrationResult helpers."""

    def test_new_disk_names_and_warnings(self):
        request = MigrationRequest("rg1", "vm1", "2", "eastus", "vault1")
        os_disk = DiskDescriptor.for_disk("osdisk1", DiskRole.OS, "Premium_LRS", "2")
        data_disk = DiskDescriptor.for_disk("data1", DiskRole.DATA, "Premium_LRS", "2")
        result = MigrationResult(
            request=request,
            vm_snapshot=make_vm_snapshot(),
            backup_job=BackupJob(job_id="job-1", status=BackupJobStatus.RUNNING),
            os_disk=os_disk,
            data_disks=[data_disk],
        )

        assert result.new_os_disk_name == "osdisk1-az-2"
        assert result.new_data_disk_names == ["data1-az-2"]
        assert not result.has_warnings

        result.cleanup_warnings.append(CleanupWarning("disk", "data1", "locked"))
        assert result.has_warnings

    def test_cleanup_warning_str(self):
        warning = CleanupWarning("snapshot", "data1-snapshot", "not found")
        assert str(warning) == "Failed to delete snapshot 'data1-snapshot': not found"
