"""Pull command - fetch and merge from a remote repository."""

import click

from xgit.cli.commands.merge import report_conflicts, report_result
from xgit.cli.output import info
from xgit.core.repository import Repository
from xgit.exceptions import MergeConflict


@click.command('pull')
@click.argument('remote', default='origin')
@click.argument('branch', required=False)
def pull_cmd(remote, branch):
    """
    Fetch from REMOTE and merge into the current branch.

    BRANCH defaults to the name of the current branch.

    Examples:
        xgit pull                 # Pull the current branch from origin
        xgit pull upstream main   # Pull main from upstream
    """
    repo = Repository.discover()
    target = branch or repo.branches.current_branch()
    click.echo(info(f"Pulling {remote}/{target}..."))
    try:
        result = repo.remote.pull(remote, branch)
    except MergeConflict as e:
        report_conflicts(e)
        raise
    report_result(result)
