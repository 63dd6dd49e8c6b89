"""CLI entry point for azmove.

Commands:
    azmove                   # Show help
    azmove migrate           # Move a VM into another availability zone
    azmove config show       # Show configured defaults
    azmove config set K V    # Set a configured default

Example:
    azmove migrate -g rg1 -n vm1 -z 2 -l eastus -v vault1
"""

import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from azmove import __version__
from azmove.click_group import AzmoveGroup
from azmove.config_manager import ConfigManager, MoveConfig
from azmove.errors import ConfigError, ZoneMigrationError
from azmove.migration_orchestrator import ZoneMigrationOrchestrator
from azmove.models import MigrationRequest, MigrationResult
from azmove.poll_config import get_poll_config
from azmove.progress import ProgressDisplay
from azmove.validation import validate_request

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


@click.group(
    cls=AzmoveGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.pass_context
@click.version_option(version=__version__)
def main(ctx: click.Context) -> None:
    """azmove - Move Azure VMs between availability zones.

    Takes an on-demand vault backup, snapshots every disk, recreates the
    disks in the target zone and recreates the VM with the same name, size,
    tags and network interface.

    \b
    COMMANDS:
        migrate       Move a VM into another availability zone
        config        Show or set defaults (resource group, region, vault)

    \b
    CONFIGURATION:
        Config file: ~/.azmove/config.toml
        Set defaults: default_resource_group, default_region, default_vault,
                      backup_retention_days
        Wait tuning:  AZMOVE_POLL_* and AZMOVE_*_TIMEOUT environment variables

    For help on any command: azmove <command> --help
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


def _print_request(console: Console, request: MigrationRequest) -> None:
    table = Table(title="Availability zone migration", show_header=False)
    table.add_column("Parameter", style="bold")
    table.add_column("Value")
    table.add_row("Resource group", request.resource_group)
    table.add_row("VM", request.vm_name)
    table.add_row("Target zone", request.target_zone)
    table.add_row("Location", request.location)
    table.add_row("Backup vault", request.vault_name)
    console.print(table)


def _print_plan(console: Console, steps: list[str]) -> None:
    table = Table(title="Planned operations")
    table.add_column("#", justify="right")
    table.add_column("Operation")
    for number, step in enumerate(steps, start=1):
        table.add_row(str(number), step)
    console.print(table)


def _print_result(console: Console, result: MigrationResult, progress: ProgressDisplay) -> None:
    table = Table(title="Migration complete", show_header=False)
    table.add_column("Item", style="bold")
    table.add_column("Value")
    table.add_row("VM", f"{result.request.vm_name} ({result.vm_snapshot.vm_size})")
    table.add_row("Zone", result.request.target_zone)
    table.add_row("OS disk", result.new_os_disk_name)
    table.add_row("Data disks", ", ".join(result.new_data_disk_names) or "-")
    table.add_row("Backup job", result.backup_job.job_id)
    console.print(table)

    if progress.phase_durations:
        timings = Table(title="Phase timings")
        timings.add_column("Phase")
        timings.add_column("Duration", justify="right")
        for phase, seconds in progress.phase_durations.items():
            timings.add_row(phase.value, ProgressDisplay.format_duration(seconds))
        timings.add_row("total", ProgressDisplay.format_duration(progress.total_duration))
        console.print(timings)

    if result.has_warnings:
        console.print("[yellow]Cleanup left resources behind (migration still succeeded):[/yellow]")
        for warning in result.cleanup_warnings:
            console.print(f"  [yellow]⚠[/yellow] {warning}")


@main.command(name="migrate")
@click.option("--resource-group", "-g", "--rg", help="Resource group of the VM", type=str)
@click.option("--vm-name", "-n", "--name", "vm_name", help="Name of the VM to move", type=str)
@click.option("--zone", "-z", help="Target availability zone (e.g. 1, 2, 3)", type=str)
@click.option("--location", "-l", help="Azure region of the VM (e.g. eastus)", type=str)
@click.option("--vault-name", "-v", "vault_name", help="Recovery Services vault", type=str)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.option("--dry-run", is_flag=True, help="Inspect the VM and show planned operations only")
@click.option("--verbose", is_flag=True, help="Show Azure CLI commands and debug output")
@click.option("--config", help="Config file path", type=click.Path())
def migrate(
    resource_group: str | None,
    vm_name: str | None,
    zone: str | None,
    location: str | None,
    vault_name: str | None,
    yes: bool,
    dry_run: bool,
    verbose: bool,
    config: str | None,
) -> None:
    """Move a VM into another availability zone.

    Stops the VM, takes an on-demand backup in the vault, snapshots every
    disk, creates zonal copies of the disks, deletes and recreates the VM
    (same name, size, tags and NIC), attaches the data disks, and finally
    deletes the old disks and snapshots.

    The original VM is only deleted after the backup snapshot and all new
    disks exist. If recreation fails after that point, restore from the
    vault backup.

    \b
    Examples:
        azmove migrate -g rg1 -n vm1 -z 2 -l eastus -v vault1
        azmove migrate -g rg1 -n vm1 -z 2 --dry-run
    """
    if verbose:
        logging.getLogger("azmove").setLevel(logging.DEBUG)

    console = Console()

    try:
        settings = ConfigManager.load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)

    # ValidationError is reported by AzmoveGroup together with this command's help
    request = validate_request(
        resource_group or settings.default_resource_group,
        vm_name,
        zone,
        location or settings.default_region,
        vault_name or settings.default_vault,
    )

    progress = ProgressDisplay()
    orchestrator = ZoneMigrationOrchestrator(
        poll_config=get_poll_config(),
        retention_days=settings.backup_retention_days,
        progress=progress,
    )

    try:
        if dry_run:
            orchestrator.check_account()
            vm_snapshot, os_disk, data_disks = orchestrator.inspect(request)
            _print_request(console, request)
            _print_plan(console, orchestrator.plan(request, vm_snapshot, os_disk, data_disks))
            click.echo("\nDry run: no changes were made.")
            return

        _print_request(console, request)
        if not yes and not click.confirm(
            f"\nVM {request.vm_name} will be stopped, deleted and recreated. Continue?",
            default=False,
        ):
            click.echo("Cancelled.")
            sys.exit(0)

        result = orchestrator.run(request)
        _print_result(console, result, progress)
        click.echo(
            f"\nThe VM {request.vm_name} has been successfully migrated to "
            f"availability zone {request.target_zone}."
        )

    except ZoneMigrationError as e:
        # Recovery guidance for a failed run has already been logged by the orchestrator
        click.echo(f"\nError: {e.message}", err=True)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        click.echo(f"\nInterrupted during {orchestrator.phase.value}.", err=True)
        for line in orchestrator.recovery_guidance(request):
            click.echo(f"  {line}", err=True)
        click.echo(
            "  The operation in flight may still be running in Azure; inspect it manually.",
            err=True,
        )
        sys.exit(EXIT_INTERRUPTED)


@main.group(name="config")
def config_group() -> None:
    """Show or set azmove defaults.

    \b
    Examples:
        azmove config show
        azmove config set default_vault vault1
        azmove config set backup_retention_days 14
    """
    pass


@config_group.command(name="show")
@click.option("--config", help="Config file path", type=click.Path())
def config_show(config: str | None) -> None:
    """Show configured defaults."""
    try:
        settings = ConfigManager.load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)

    table = Table(title=str(ConfigManager.get_config_path(config)))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key in MoveConfig.keys():
        value = getattr(settings, key)
        table.add_row(key, "-" if value is None else str(value))
    Console().print(table)


@config_group.command(name="set")
@click.argument("key", type=str)
@click.argument("value", type=str)
@click.option("--config", help="Config file path", type=click.Path())
def config_set(key: str, value: str, config: str | None) -> None:
    """Set a configured default."""
    try:
        ConfigManager.update_config(config, **{key: value})
    except ConfigError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)

    click.echo(f"✓ Set {key} = {value}")


if __name__ == "__main__":
    main()
