"""Unit tests for vm_recreation module."""

import copy

import pytest

from azmove.errors import PreflightError, RemoteOperationError
from azmove.models import DiskDescriptor, DiskRole, MigrationRequest
from azmove.vm_recreation import VMRecreationManager

from ..fixtures.azure_responses import NIC_ID, SAMPLE_VM, sample_vm
from ..mocks.azure_mock import FakeControlPlane


def vm_with_storage(**storage_overrides):
    """sample_vm() with storageProfile keys replaced."""
    storage = copy.deepcopy(SAMPLE_VM["storageProfile"])
    storage.update(storage_overrides)
    return sample_vm(storageProfile=storage)


def capture(vm, request):
    return VMRecreationManager(FakeControlPlane(vm=vm)).capture(request)


class TestCapture:
    """Tests for VMRecreationManager.capture()."""

    def test_captures_configuration(self, fake_cloud, migration_request):
        snapshot = VMRecreationManager(fake_cloud).capture(migration_request)

        assert snapshot.vm_name == "vm1"
        assert snapshot.vm_size == "Standard_D2s_v3"
        assert snapshot.os_type == "Linux"
        assert snapshot.network_interface_id == NIC_ID
        assert snapshot.os_disk_name == "osdisk1"
        assert snapshot.data_disk_names == ["data1"]
        assert snapshot.data_disk_luns == {"data1": 0}
        assert snapshot.tags == {"env": "prod", "owner": "ops"}
        assert snapshot.zones == ["1"]
        assert snapshot.is_complete

    def test_vm_not_found(self, fake_cloud):
        request = MigrationRequest("rg1", "vm9", "2", "eastus", "vault1")

        with pytest.raises(PreflightError, match="VM 'vm9' not found in resource group 'rg1'"):
            VMRecreationManager(fake_cloud).capture(request)

    def test_missing_vm_size(self, migration_request):
        with pytest.raises(PreflightError, match="VM size"):
            capture(sample_vm(hardwareProfile={"vmSize": ""}), migration_request)

    def test_missing_nic(self, migration_request):
        with pytest.raises(PreflightError, match="NIC"):
            capture(sample_vm(networkProfile={"networkInterfaces": []}), migration_request)

    def test_primary_nic_preferred(self, migration_request):
        nics = [{"id": "nic-secondary", "primary": False}, {"id": "nic-primary", "primary": True}]
        snapshot = capture(sample_vm(networkProfile={"networkInterfaces": nics}), migration_request)
        assert snapshot.network_interface_id == "nic-primary"

    def test_captures_nic_delete_option(self, migration_request):
        nics = [
            {"id": "nic-secondary", "primary": False},
            {"id": NIC_ID, "primary": True, "deleteOption": "Delete"},
        ]
        snapshot = capture(sample_vm(networkProfile={"networkInterfaces": nics}), migration_request)

        assert snapshot.nic_index == 1
        assert snapshot.nic_delete_option == "Delete"
        assert snapshot.nic_deleted_with_vm

    def test_no_tags(self, migration_request):
        assert capture(sample_vm(tags=None), migration_request).tags == {}

    def test_malformed_tags(self, migration_request):
        with pytest.raises(PreflightError, match="tags"):
            capture(sample_vm(tags=["env=prod"]), migration_request)

    def test_already_in_target_zone(self, migration_request):
        with pytest.raises(PreflightError, match="already in availability zone 2"):
            capture(sample_vm(zones=["2"]), migration_request)

    def test_regional_vm_accepted(self, migration_request):
        assert capture(sample_vm(zones=None), migration_request).zones == []

    def test_os_type_read_from_disk(self, migration_request):
        vm = vm_with_storage(osDisk={"name": "osdisk1", "managedDisk": {}})
        cloud = FakeControlPlane(vm=vm)
        cloud.disks["osdisk1"]["osType"] = "Windows"

        assert VMRecreationManager(cloud).capture(migration_request).os_type == "Windows"

    def test_os_type_unknown(self, migration_request):
        vm = vm_with_storage(osDisk={"name": "osdisk1", "managedDisk": {}})

        with pytest.raises(PreflightError, match="OS type"):
            capture(vm, migration_request)

    def test_data_disk_without_name(self, migration_request):
        with pytest.raises(PreflightError, match="data disks"):
            capture(vm_with_storage(dataDisks=[{"lun": 0}]), migration_request)

    @pytest.mark.parametrize(
        "os_disk,message",
        [
            (
                {"name": "osdisk1", "osType": "Linux", "diffDiskSettings": {"option": "Local"}},
                "ephemeral",
            ),
            ({"name": "osdisk1", "osType": "Linux", "vhd": {"uri": "https://x"}}, "not a managed"),
            (
                {"name": "osdisk1", "osType": "Linux",
                 "managedDisk": {"storageAccountType": "UltraSSD_LRS"}},
                "Ultra",
            ),
        ],
    )
    def test_unsupported_disks(self, migration_request, os_disk, message):
        with pytest.raises(PreflightError, match=message):
            capture(vm_with_storage(osDisk=os_disk), migration_request)


class TestRecreate:
    """Tests for delete/create/attach."""

    @pytest.fixture
    def manager(self, fake_cloud):
        return VMRecreationManager(fake_cloud)

    @pytest.fixture
    def vm_snapshot(self, manager, migration_request):
        return manager.capture(migration_request)

    @pytest.fixture
    def new_data_disks(self):
        return [DiskDescriptor.for_disk("data1", DiskRole.DATA, "StandardSSD_LRS", "2", lun=0)]

    def test_recreate_sequence(
        self, manager, fake_cloud, vm_snapshot, migration_request, new_data_disks
    ):
        manager.recreate(vm_snapshot, migration_request, "osdisk1-az-2", new_data_disks)

        assert fake_cloud.operations("delete_vm", "create_vm", "attach_disk") == [
            ("delete_vm", "vm1"),
            ("create_vm", "vm1"),
            ("attach_disk", "data1-az-2"),
        ]
        _, _, kwargs = next(c for c in fake_cloud.calls if c[0] == "create_vm")
        assert kwargs["zone"] == "2"
        assert kwargs["os_disk"] == "osdisk1-az-2"
        assert kwargs["nic_id"] == NIC_ID
        assert kwargs["vm_size"] == "Standard_D2s_v3"
        assert kwargs["os_type"] == "Linux"
        assert kwargs["tags"] == ["env=prod", "owner=ops"]
        assert fake_cloud.vms["vm1"]["zones"] == ["2"]

    def test_tags_sanitized(self, manager, fake_cloud, vm_snapshot, migration_request):
        vm_snapshot.tags = {"cost/center": "a&b"}

        manager.create_vm(vm_snapshot, migration_request, "osdisk1-az-2")

        _, _, kwargs = next(c for c in fake_cloud.calls if c[0] == "create_vm")
        assert kwargs["tags"] == ["costcenter=ab"]

    def test_incomplete_snapshot_never_deletes(
        self, manager, fake_cloud, vm_snapshot, migration_request
    ):
        vm_snapshot.vm_size = ""

        with pytest.raises(PreflightError, match="missing vm_size"):
            manager.delete_original(vm_snapshot, migration_request)

        assert fake_cloud.operations("delete_vm") == []
        assert "vm1" in fake_cloud.vms

    def test_delete_failure(self, manager, fake_cloud, vm_snapshot, migration_request):
        fake_cloud.fail("delete_vm", "vm1")

        with pytest.raises(RemoteOperationError, match="Failed to delete the original VM vm1"):
            manager.delete_original(vm_snapshot, migration_request)

    def test_create_failure(self, manager, fake_cloud, vm_snapshot, migration_request):
        fake_cloud.fail("create_vm", "vm1", "ERROR: (SkuNotAvailable) not in zone 2")

        with pytest.raises(RemoteOperationError, match="availability zone 2: ERROR"):
            manager.create_vm(vm_snapshot, migration_request, "osdisk1-az-2")

    def test_attach_uses_captured_lun(self, manager, fake_cloud, vm_snapshot, migration_request):
        fake_cloud.create_vm(
            vm_name="vm1", location="eastus", zone="2", vm_size="x", os_disk="d",
            os_type="Linux", nic_id=NIC_ID, tags=[],
        )
        vm_snapshot.data_disk_luns = {"data1": 4}
        disks = [DiskDescriptor.for_disk("data1", DiskRole.DATA, "Premium_LRS", "2")]

        manager.attach_data_disks(vm_snapshot, migration_request, disks)

        assert ("attach_disk", "data1-az-2", 4) in fake_cloud.calls

    def test_attach_failure(
        self, manager, fake_cloud, vm_snapshot, migration_request, new_data_disks
    ):
        fake_cloud.fail("attach_disk", "data1-az-2")

        with pytest.raises(RemoteOperationError, match="Failed to attach data disk: data1-az-2"):
            manager.attach_data_disks(vm_snapshot, migration_request, new_data_disks)


class TestNicDeleteOption:
    """A NIC set to be deleted with the VM must survive the recreation."""

    @pytest.fixture
    def cloud(self):
        nics = [{"id": NIC_ID, "primary": True, "deleteOption": "Delete"}]
        return FakeControlPlane(vm=sample_vm(networkProfile={"networkInterfaces": nics}))

    @pytest.fixture
    def manager(self, cloud):
        return VMRecreationManager(cloud)

    def test_nic_detached_before_delete(self, manager, cloud, migration_request):
        vm_snapshot = manager.capture(migration_request)

        manager.recreate(vm_snapshot, migration_request, "osdisk1-az-2", [])

        assert cloud.operations("detach_nic_on_delete", "delete_vm", "create_vm") == [
            ("detach_nic_on_delete", "vm1"),
            ("delete_vm", "vm1"),
            ("create_vm", "vm1"),
        ]
        assert cloud.deleted_nics == []
        assert cloud.vms["vm1"]["networkProfile"]["networkInterfaces"][0]["id"] == NIC_ID

    def test_detach_failure_keeps_vm(self, manager, cloud, migration_request):
        vm_snapshot = manager.capture(migration_request)
        cloud.fail("detach_nic_on_delete", "vm1")

        with pytest.raises(RemoteOperationError, match="Failed to keep the NIC of VM vm1"):
            manager.delete_original(vm_snapshot, migration_request)

        assert cloud.operations("delete_vm") == []
        assert "vm1" in cloud.vms

    def test_detach_nic_not_needed(self, fake_cloud, migration_request):
        manager = VMRecreationManager(fake_cloud)

        manager.delete_original(manager.capture(migration_request), migration_request)

        assert fake_cloud.operations("detach_nic_on_delete") == []
