"""Branch command - list, create, delete, inspect and prune branches."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

import click
from colorama import Fore, Style

from xgit.cli.display import render_branch_stats
from xgit.cli.output import info, success, warning
from xgit.core.repository import Repository
from xgit.exceptions import BranchNotFound, XgitError
from xgit.integrations.github import GitHubPRMatcher
from xgit.operations.branch import MergeStatus
from xgit.operations.prune import BranchPruner

PR_LOOKUP_WORKERS = 4


def pull_request_lookup(repo, branches) -> Optional[Callable[[str], object]]:
    """
    Look up pull requests for branches concurrently.

    Returns:
        Callable mapping a branch name to its PR (or None), or None when the
        repository has no GitHub remote
    """
    matcher = GitHubPRMatcher.for_repository(repo)
    if matcher is None or not branches:
        return None
    with ThreadPoolExecutor(max_workers=PR_LOOKUP_WORKERS) as pool:
        found: Dict[str, object] = dict(zip(branches, pool.map(matcher.find_pr_for_branch, branches)))
    return found.get


@click.command('branch')
@click.option('--stats', is_flag=True, help='Show commit, merge and tracking details per branch')
@click.option('--no-pr', is_flag=True, help='Skip the GitHub pull request lookup with --stats')
@click.option('--prune-merged', is_flag=True, help='Delete merged branches whose upstream is gone')
@click.option('--dry-run', is_flag=True, help='With --prune-merged, only show what would be deleted')
@click.option('--remote', default='origin', show_default=True, help='Remote checked by --prune-merged')
@click.option('-c', '--create', 'create', metavar='NAME', help='Create a branch and switch to it')
@click.option('-d', '--delete', 'delete', metavar='NAME', help='Delete a branch')
@click.option('-f', '--force', is_flag=True, help='With -d, delete even if not merged to main')
def branch_cmd(stats, no_pr, prune_merged, dry_run, remote, create, delete, force):
    """
    List, create, or delete branches.

    Examples:
        xgit branch                          # List branches
        xgit branch --stats                  # Detailed view with PR info
        xgit branch -c feature               # Create and switch
        xgit branch -d feature               # Delete a merged branch
        xgit branch --prune-merged --dry-run # Preview cleanup
    """
    if dry_run and not prune_merged:
        raise click.UsageError('--dry-run requires --prune-merged')

    repo = Repository.discover()

    if prune_merged:
        _prune(repo, remote, dry_run)
        return

    if create:
        repo.branches.create_and_checkout(create)
        click.echo(success(f"Created and switched to branch '{create}'"))
        return

    if delete:
        _delete(repo, delete, force)
        return

    if stats:
        names = repo.branches.list_branches()
        lookup = None if no_pr else pull_request_lookup(repo, names)
        click.echo(render_branch_stats(repo.branches.branch_infos(pr_lookup=lookup)), nl=False)
        return

    current = repo.refs.get_current_branch()
    branches = repo.branches.list_branches()
    if not branches:
        click.echo(info("No branches yet"))
        return
    for name in branches:
        if name == current:
            click.echo(f"{Fore.GREEN}* {name}{Style.RESET_ALL}")
        else:
            click.echo(f"  {name}")


def _delete(repo, name: str, force: bool) -> None:
    if not repo.branches.exists(name):
        raise BranchNotFound(name)
    if name == repo.refs.get_current_branch():
        raise XgitError(f"Cannot delete branch '{name}' checked out at '{repo.path}'", {'branch': name})
    if not force and repo.branches.merge_status(name) is MergeStatus.NOT_MERGED:
        raise XgitError(
            f"The branch '{name}' is not fully merged. Use 'xgit branch -d {name} --force' to delete it anyway.",
            {'branch': name},
        )
    tip = repo.refs.resolve(f'refs/heads/{name}')
    repo.branches.delete(name)
    click.echo(success(f"Deleted branch {name} (was {tip[:7]})"))


def _prune(repo, remote: str, dry_run: bool) -> None:
    click.echo(info(f"Fetching from {remote} with prune..."))
    report = BranchPruner(repo, remote).prune(dry_run=dry_run)

    for name, reason in report.skipped.items():
        click.echo(warning(f"Keeping {name}: {reason}"))
    if not report.deleted:
        click.echo(info("No merged branches to prune"))
        return
    for name in report.deleted:
        if dry_run:
            click.echo(info(f"Would delete branch {name}"))
        else:
            click.echo(success(f"Deleted branch {name}"))
