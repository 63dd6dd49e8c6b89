"""Validation of migration parameters.

All five parameters are required. Validation happens before any remote
call, so a bad invocation never touches Azure.

Philosophy:
- Report every missing parameter at once
- Security-first: reject characters that could smuggle extra arguments
- Clear error messages with actionable guidance

Public API:
    validate_request: Build a MigrationRequest or raise ValidationError
    validate_azure_resource_name: Check a single resource name
"""

import re

from azmove.errors import ValidationError
from azmove.models import MigrationRequest

# Parameter name -> option shown to the user
PARAMETER_OPTIONS = {
    "resource_group": "-g/--resource-group",
    "vm_name": "-n/--vm-name",
    "target_zone": "-z/--zone",
    "location": "-l/--location",
    "vault_name": "-v/--vault-name",
}

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.()\-]+$")
LOCATION_PATTERN = re.compile(r"^[a-z0-9]+$")
ZONE_PATTERN = re.compile(r"^[1-9]$")


def validate_azure_resource_name(name: str, resource_type: str) -> str:
    """Validate an Azure resource name for safe use as a CLI argument.

    Args:
        name: Resource name to validate
        resource_type: Type of resource (for error messages)

    Returns:
        Validated name (unchanged if valid)

    Raises:
        ValidationError: If name is empty or contains unsafe characters

    Example:
        >>> validate_azure_resource_name("my-vm-01", "VM")
        'my-vm-01'
    """
    if not name.strip():
        raise ValidationError(f"{resource_type} name must be a non-empty string")

    if name.startswith("-"):
        raise ValidationError(f"{resource_type} name cannot start with '-': {name}")

    if not NAME_PATTERN.match(name):
        raise ValidationError(
            f"{resource_type} name contains invalid characters: {name}. "
            "Use only alphanumeric characters, hyphens, underscores, periods and parentheses."
        )

    return name


def validate_request(
    resource_group: str | None,
    vm_name: str | None,
    target_zone: str | None,
    location: str | None,
    vault_name: str | None,
) -> MigrationRequest:
    """Validate migration parameters and build a MigrationRequest.

    Args:
        resource_group: Resource group holding the VM, its disks and the vault
        vm_name: VM to migrate
        target_zone: Target availability zone ("1", "2", ...)
        location: Azure region of the VM (e.g. eastus)
        vault_name: Recovery Services vault protecting the VM

    Returns:
        Frozen MigrationRequest

    Raises:
        ValidationError: If any parameter is missing or malformed
    """
    values = {
        "resource_group": (resource_group or "").strip(),
        "vm_name": (vm_name or "").strip(),
        "target_zone": (str(target_zone) if target_zone is not None else "").strip(),
        "location": (location or "").strip(),
        "vault_name": (vault_name or "").strip(),
    }

    missing = [name for name, value in values.items() if not value]
    if missing:
        options = ", ".join(PARAMETER_OPTIONS[name] for name in missing)
        raise ValidationError(
            f"All parameters are required. Missing: {options}", missing=missing
        )

    validate_azure_resource_name(values["resource_group"], "Resource group")
    validate_azure_resource_name(values["vm_name"], "VM")
    validate_azure_resource_name(values["vault_name"], "Vault")

    if not ZONE_PATTERN.match(values["target_zone"]):
        raise ValidationError(
            f"Invalid availability zone: {values['target_zone']}. "
            "Expected a zone number such as 1, 2 or 3."
        )

    location_value = values["location"].lower()
    if not LOCATION_PATTERN.match(location_value):
        raise ValidationError(
            f"Invalid location: {values['location']}. Use the region's short name, e.g. eastus."
        )

    return MigrationRequest(
        resource_group=values["resource_group"],
        vm_name=values["vm_name"],
        target_zone=values["target_zone"],
        location=location_value,
        vault_name=values["vault_name"],
    )


__all__ = ["PARAMETER_OPTIONS", "validate_azure_resource_name", "validate_request"]
