"""Initialize a new repository."""

from pathlib import Path

import click

from xgit.cli.output import info, success
from xgit.core.repository import Repository


@click.command('init')
@click.argument('path', default='.')
@click.option('--bare', is_flag=True, help='Create a bare repository')
@click.option('-b', '--initial-branch', default=None, help='Name of the unborn initial branch')
def init_cmd(path, bare, initial_branch):
    """
    Initialize a new repository.

    Creates a .git directory with the standard layout, or the layout itself
    directly in PATH with --bare.

    Examples:
        xgit init                    # Initialize in current directory
        xgit init my-project         # Initialize in my-project directory
        xgit init --bare repo.git    # Create a bare repository
        xgit init -b main            # Start on 'main'
    """
    repo_path = Path(path).resolve()
    if bare:
        repo = Repository.init_bare(repo_path, initial_branch)
        click.echo(success(f"Initialized empty bare repository in {repo.git_dir}"))
        return

    repo = Repository.init(repo_path, initial_branch)
    click.echo(success(f"Initialized empty repository in {repo.git_dir}"))
    click.echo(info(f"On branch {repo.refs.get_current_branch()} (no commits yet)"))
