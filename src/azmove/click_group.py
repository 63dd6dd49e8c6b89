"""Click group that answers bad input with the relevant help text.

Click's own usage errors and azmove's ValidationError (missing or malformed
migration parameters) are reported the same way: the error message, then
the help of the command that rejected the input, then exit with the error's
exit code.
"""

import sys
from typing import Any

import click

from azmove.errors import ValidationError

USAGE_ERRORS = (
    click.exceptions.UsageError,
    click.exceptions.BadParameter,
    click.exceptions.MissingParameter,
)


def _fail_with_help(message: str, help_ctx: click.Context, exit_code: int) -> None:
    click.echo(f"Error: {message}", err=True)
    click.echo("")
    click.echo(help_ctx.get_help())
    help_ctx.exit(exit_code)


class AzmoveGroup(click.Group):
    """Command group that shows contextual help on usage and validation errors."""

    def main(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().main(*args, **kwargs)
        except USAGE_ERRORS as e:
            if e.ctx:
                _fail_with_help(e.format_message(), e.ctx, e.exit_code)
                return None
            click.echo(f"Error: {e.format_message()}", err=True)
            sys.exit(e.exit_code)

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except USAGE_ERRORS as e:
            _fail_with_help(e.format_message(), e.ctx or ctx, e.exit_code)
            return None
        except ValidationError as e:
            # Raised from inside a command, whose context is already closed
            _fail_with_help(e.message, self._subcommand_context(ctx), e.exit_code)
            return None

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            if isinstance(e, click.exceptions.MissingParameter | click.exceptions.BadParameter):
                raise
            _fail_with_help(e.format_message(), ctx, 1)
            return None, None, []

    def _subcommand_context(self, ctx: click.Context) -> click.Context:
        """Fresh context for the subcommand being run, for rendering its help."""
        name = ctx.invoked_subcommand
        command = self.get_command(ctx, name) if name else None
        if command is None:
            return ctx
        return click.Context(command, info_name=name, parent=ctx)


# Subgroups created with @main.group() also use AzmoveGroup
AzmoveGroup.group_class = AzmoveGroup
