"""Commit message suggestions from an external text-generation CLI."""

import json
import os
import shlex
import subprocess
from typing import List, Optional

from xgit.utils.log import get_logger

logger = get_logger(__name__)

DEFAULT_COMMAND = 'claude'
COMMAND_ENV = 'XGIT_AI_COMMAND'
TIMEOUT_SECONDS = 60

PROMPT_TEMPLATE = """Based on the following git diff, generate a conventional commit message.

The message should follow this format:
<type>[optional scope]: <description>

[optional body]

Choose type from: feat, fix, docs, style, refactor, test, chore
Keep the description under 50 characters, use imperative mood, and capitalize the first letter.

Respond with ONLY the commit message, no additional text or formatting.

Git diff:
{diff}"""


def build_prompt(diff_text: str) -> str:
    return PROMPT_TEMPLATE.format(diff=diff_text)


def _command() -> List[str]:
    return shlex.split(os.environ.get(COMMAND_ENV) or DEFAULT_COMMAND)


def parse_response(output: str) -> Optional[str]:
    """
    Extract the message from the generator's JSON output.

    Args:
        output: stdout of the generator, a JSON object with a 'result' field

    Returns:
        Trimmed message, or None when missing or empty
    """
    try:
        payload = json.loads(output)
    except json.JSONDecodeError:
        logger.debug("Commit message generator returned invalid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    result = payload.get('result')
    if not isinstance(result, str) or not result.strip():
        return None
    return result.strip()


def generate_commit_message(diff_text: str, timeout: float = TIMEOUT_SECONDS) -> Optional[str]:
    """
    Suggest a conventional commit message for a staged diff.

    Runs ``<command> --print --output-format json <prompt>``. Any failure
    (missing executable, non-zero exit, timeout, unparseable output) yields
    None; the caller then asks the user for a message.

    Args:
        diff_text: Unified diff of the staged changes
        timeout: Seconds to wait for the generator

    Returns:
        Suggested message, or None
    """
    if not diff_text.strip():
        return None

    args = _command() + ['--print', '--output-format', 'json', build_prompt(diff_text)]
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Commit message generator unavailable: {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"Commit message generator exited with {result.returncode}")
        return None
    return parse_response(result.stdout)
