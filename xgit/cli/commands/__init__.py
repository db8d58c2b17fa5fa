"""CLI commands for xgit."""

from xgit.cli.commands.branch import branch_cmd
from xgit.cli.commands.checkout import checkout_cmd
from xgit.cli.commands.commit import commit_cmd
from xgit.cli.commands.fetch import fetch_cmd
from xgit.cli.commands.init import init_cmd
from xgit.cli.commands.merge import merge_cmd
from xgit.cli.commands.pull import pull_cmd
from xgit.cli.commands.push import push_cmd
from xgit.cli.commands.remote import remote_cmd

__all__ = ['init_cmd', 'branch_cmd', 'checkout_cmd', 'commit_cmd', 'merge_cmd',
           'fetch_cmd', 'pull_cmd', 'push_cmd', 'remote_cmd']
