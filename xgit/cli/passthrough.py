"""Forwarding of allowlisted subcommands to the git executable."""

import subprocess
from typing import Sequence

from xgit.exceptions import XgitError
from xgit.utils.log import get_logger

logger = get_logger(__name__)

GIT_EXECUTABLE = 'git'

# Subcommands that are safe to hand to git unchanged
ALLOWED_COMMANDS = frozenset([
    'add', 'status', 'log', 'diff', 'show', 'remote', 'fetch', 'pull', 'push',
    'checkout', 'switch', 'merge', 'rebase', 'reset', 'clean', 'stash', 'tag',
    'blame', 'grep', 'ls-files', 'describe', 'reflog', 'cherry-pick', 'revert',
    'bisect', 'submodule', 'worktree', 'config', 'help', 'version',
])


def is_allowed(subcommand: str) -> bool:
    return subcommand in ALLOWED_COMMANDS


def git_passthrough(subcommand: str, args: Sequence[str]) -> int:
    """
    Run ``git <subcommand> <args...>`` attached to the terminal.

    Args:
        subcommand: Allowlisted git subcommand
        args: Arguments passed through verbatim

    Returns:
        git's exit code

    Raises:
        XgitError: If the subcommand is not allowlisted or git cannot be run
    """
    if not is_allowed(subcommand):
        raise XgitError(
            f"Command '{subcommand}' is not allowed. Use 'git {subcommand}' directly if needed.",
            {'command': subcommand},
        )
    command = [GIT_EXECUTABLE, subcommand, *args]
    logger.debug(f"Passing through: {' '.join(command)}")
    try:
        return subprocess.call(command)
    except OSError as e:
        raise XgitError(f"Error running git {subcommand}: {e}", {'command': subcommand}) from e
