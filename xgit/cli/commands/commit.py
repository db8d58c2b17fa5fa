"""Commit command - create a commit from staged changes."""

import click

from xgit.cli.output import info, success, warning
from xgit.core.hash import short_oid
from xgit.core.repository import Repository
from xgit.exceptions import XgitError
from xgit.integrations.commit_message import generate_commit_message
from xgit.operations.diff import DiffEngine, shortstat


def choose_message(staging, accept: bool) -> str:
    """
    Ask the generator for a message and let the user accept or replace it.

    Raises:
        XgitError: If the user ends up with an empty message
    """
    click.echo(info("Generating commit message..."))
    suggestion = generate_commit_message(staging.staged_diff())
    if suggestion:
        click.echo()
        click.echo(suggestion)
        click.echo()
        if accept or click.confirm('Use this message?', default=True):
            return suggestion
    else:
        click.echo(warning("No suggestion available"))

    message = click.prompt('Commit message', default='', show_default=False).strip()
    if not message:
        raise XgitError("Aborting commit due to empty commit message")
    return message


@click.command('commit')
@click.option('-m', '--message', help='Commit message')
@click.option('-y', '--yes', 'accept', is_flag=True, help='Accept the suggested message without asking')
def commit_cmd(message, accept):
    """
    Record staged changes to the repository.

    Without -m a conventional commit message is suggested from the staged
    diff. During a merge, this completes the merge with MERGE_MSG as the
    default message.

    Examples:
        xgit commit -m "Add feature"
        xgit commit            # Suggest a message
        xgit commit -y         # Take the suggestion as is
    """
    repo = Repository.discover()
    staging = repo.staging
    merging = repo.merge.is_merge_in_progress()

    if not merging and not staging.has_staged_changes():
        raise XgitError("Nothing to commit (use 'git add' to stage changes)")

    if not message and merging:
        message = repo.merge.get_merge_message()
        if message:
            click.echo(info(f"Using merge message: {message.splitlines()[0]}"))
    if not message:
        message = choose_message(staging, accept)

    root = repo.refs.is_unborn()
    oid = staging.commit(message)
    where = 'detached HEAD' if repo.refs.is_detached_head() else repo.refs.get_current_branch()
    if root:
        where += ' (root-commit)'
    click.echo(success(f"[{where} {short_oid(oid)}] {message.splitlines()[0]}"))

    parents = repo.read_commit(oid).parents
    click.echo(f" {shortstat(DiffEngine(repo).diff_commits(parents[0] if parents else None, oid))}")
