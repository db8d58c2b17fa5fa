"""Fetch command - download objects and refs from a remote repository."""

import click

from xgit.cli.output import info, success
from xgit.core.refs import REMOTES_PREFIX
from xgit.core.repository import Repository


@click.command('fetch')
@click.argument('remote', default='origin')
@click.argument('branch', required=False)
@click.option('-p', '--prune', is_flag=True, help='Remove remote-tracking refs that no longer exist on the remote')
def fetch_cmd(remote, branch, prune):
    """
    Download objects and refs from a remote repository.

    Updates remote-tracking branches only; local branches and the working
    tree are left alone.

    Examples:
        xgit fetch                # Fetch from origin
        xgit fetch upstream main  # Fetch one branch
        xgit fetch --prune        # Also drop deleted remote branches
    """
    repo = Repository.discover()
    click.echo(info(f"Fetching from {remote}..."))
    result = repo.remote.fetch(remote, branch, prune=prune)

    for ref, (old, new) in result.updated.items():
        name = ref[len(REMOTES_PREFIX):] if ref.startswith(REMOTES_PREFIX) else ref
        if old is None:
            click.echo(f"  * [new branch] {name}")
        else:
            click.echo(f"    {old[:7]}..{new[:7]} {name}")
    for name in result.pruned:
        click.echo(f"  - [deleted] {name}")

    if result.received:
        click.echo(success(result.message))
    else:
        click.echo(info(result.message))
