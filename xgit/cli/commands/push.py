"""Push command - upload a branch to a remote repository."""

import click

from xgit.cli.output import info, success
from xgit.core.repository import Repository


@click.command('push')
@click.argument('remote', default='origin')
@click.argument('branch', required=False)
@click.option('-f', '--force', is_flag=True, help='Allow non-fast-forward updates')
@click.option('-u', '--set-upstream', is_flag=True, help='Track the pushed branch')
def push_cmd(remote, branch, force, set_upstream):
    """
    Push a branch to REMOTE.

    BRANCH defaults to the current branch. Updates that would lose commits
    on the remote are rejected unless --force is given.

    Examples:
        xgit push                 # Push current branch to origin
        xgit push -u origin dev   # Push dev and track it
        xgit push --force         # Overwrite the remote branch
    """
    repo = Repository.discover()
    result = repo.remote.push(remote, branch, force=force, set_upstream=set_upstream)
    if result.up_to_date:
        click.echo(info(result.message))
    else:
        click.echo(success(result.message))
    if set_upstream:
        click.echo(info(f"Branch '{result.branch}' set up to track '{remote}/{result.branch}'"))
