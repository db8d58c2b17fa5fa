"""Remote command - manage remote repositories."""

import click

from xgit.cli.output import info, success
from xgit.core.repository import Repository


@click.group('remote', invoke_without_command=True)
@click.option('-v', '--verbose', is_flag=True, help='Show remote URLs')
@click.pass_context
def remote_cmd(ctx, verbose):
    """Manage remote repositories."""
    if ctx.invoked_subcommand is not None:
        return
    repo = Repository.discover()
    remotes = repo.remote.list_remotes()
    if not remotes:
        click.echo(info("No remotes configured"))
        return
    for remote in remotes:
        click.echo(f"{remote.name}\t{remote.url}" if verbose else remote.name)


@remote_cmd.command('add')
@click.argument('name')
@click.argument('url')
def remote_add(name, url):
    """
    Add a remote repository.

    NAME: Remote name (e.g., 'origin', 'upstream')
    URL: Remote repository path or file:// URL

    Examples:
        xgit remote add origin /path/to/repo.git
        xgit remote add upstream ../other-repo
    """
    repo = Repository.discover()
    repo.remote.add_remote(name, url)
    click.echo(success(f"Added remote '{name}': {url}"))


@remote_cmd.command('set-url')
@click.argument('name')
@click.argument('url')
def remote_set_url(name, url):
    """Change the URL of remote NAME."""
    repo = Repository.discover()
    repo.remote.set_remote_url(name, url)
    click.echo(success(f"Remote '{name}' now points at {url}"))


@remote_cmd.command('remove')
@click.argument('name')
def remote_remove(name):
    """Remove remote NAME and its remote-tracking branches."""
    repo = Repository.discover()
    repo.remote.remove_remote(name)
    click.echo(success(f"Removed remote '{name}'"))
