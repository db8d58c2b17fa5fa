"""Checkout command - switch branches."""

import click

from xgit.cli.output import success
from xgit.core.repository import Repository


@click.command('checkout')
@click.argument('name')
@click.option('-b', 'create', is_flag=True, help='Create the branch and switch to it')
def checkout_cmd(name, create):
    """
    Switch to branch NAME.

    Local changes that the switch would overwrite abort the checkout
    without touching anything.

    Examples:
        xgit checkout main
        xgit checkout -b feature/login
    """
    repo = Repository.discover()
    if create:
        repo.branches.create_and_checkout(name)
        click.echo(success(f"Switched to a new branch '{name}'"))
    else:
        repo.branches.checkout(name)
        click.echo(success(f"Switched to branch '{name}'"))
