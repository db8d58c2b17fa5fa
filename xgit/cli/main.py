"""Main CLI entry point for xgit."""

import click
from colorama import init

from xgit import __version__
from xgit.cli.commands import (branch_cmd, checkout_cmd, commit_cmd, fetch_cmd, init_cmd,
                               merge_cmd, pull_cmd, push_cmd, remote_cmd)
from xgit.cli.output import BANNER, error
from xgit.cli.passthrough import git_passthrough
from xgit.exceptions import XgitError
from xgit.utils.log import configure_logging

# Initialize colorama for cross-platform colored output
init(autoreset=True)


def passthrough_command(name: str) -> click.Command:
    """A command forwarding its raw arguments to ``git <name>``."""

    @click.command(
        name,
        add_help_option=False,
        context_settings={'ignore_unknown_options': True, 'allow_extra_args': True},
    )
    @click.argument('args', nargs=-1, type=click.UNPROCESSED)
    @click.pass_context
    def command(ctx, args):
        ctx.exit(git_passthrough(name, args))

    return command


class XgitGroup(click.Group):
    """
    Command group that forwards unknown subcommands to git and turns
    XgitError into a red message and exit status 1.
    """

    def format_help(self, ctx, formatter):
        """Override to add banner before help text."""
        click.echo(BANNER)
        super().format_help(ctx, formatter)

    def get_command(self, ctx, cmd_name):
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        return passthrough_command(cmd_name)

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except XgitError as e:
            click.echo(error(str(e)), err=True)
            ctx.exit(1)


@click.group(cls=XgitGroup)
@click.version_option(version=__version__, prog_name='xgit')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
def cli(verbose):
    configure_logging(verbose)


# Register commands
cli.add_command(init_cmd)
cli.add_command(branch_cmd)
cli.add_command(checkout_cmd)
cli.add_command(commit_cmd)
cli.add_command(merge_cmd)
cli.add_command(fetch_cmd)
cli.add_command(pull_cmd)
cli.add_command(push_cmd)
cli.add_command(remote_cmd)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
