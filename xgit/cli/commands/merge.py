"""Merge command."""

import click

from xgit.cli.output import error, info, success, warning
from xgit.core.repository import Repository
from xgit.exceptions import MergeConflict, XgitError


def report_conflicts(conflict: MergeConflict) -> None:
    """Print conflicted paths and how to continue."""
    for path in conflict.paths:
        click.echo(error(f"CONFLICT (content): Merge conflict in {path}"))
    click.echo(warning("Automatic merge failed; fix conflicts and then commit the result."))
    click.echo(info("To resolve:"))
    click.echo(info("  1. Edit the conflicted files (look for <<<<<<< HEAD, =======, >>>>>>>)"))
    click.echo(info("  2. Stage the resolved files: xgit add <file>"))
    click.echo(info("  3. Complete the merge: xgit commit"))
    click.echo(info("Or abort with: xgit merge --abort"))


def report_result(result) -> None:
    if result.up_to_date:
        click.echo(info(result.message))
    else:
        click.echo(success(result.message))


@click.command('merge')
@click.argument('branch', required=False)
@click.option('-m', '--message', help='Message for the merge commit')
@click.option('--abort', is_flag=True, help='Abort the current merge operation')
def merge_cmd(branch, message, abort):
    """
    Merge BRANCH into the current branch.

    BRANCH may be a local branch or a remote-tracking branch such as
    origin/main.

    Examples:
        xgit merge feature          # Merge feature into current branch
        xgit merge origin/main      # Merge fetched upstream work
        xgit merge --abort          # Abandon a conflicted merge
    """
    repo = Repository.discover()

    if abort:
        if not repo.merge.is_merge_in_progress():
            raise XgitError("There is no merge to abort (MERGE_HEAD missing)")
        repo.merge.abort_merge()
        click.echo(success("Merge aborted"))
        return

    if not branch:
        raise click.UsageError('Missing branch name (or --abort)')

    try:
        result = repo.merge.merge(branch, message=message)
    except MergeConflict as e:
        report_conflicts(e)
        raise
    report_result(result)
