"""Branch statistics rendering.

Works purely on ``BranchInfo`` values; nothing here touches the repository.
"""

from typing import List, Sequence

from colorama import Fore, Style

from xgit.operations.branch import BranchInfo, MergeStatus


def _styled(text: str, color: str, bright: bool = False) -> str:
    return f"{color}{Style.BRIGHT if bright else ''}{text}{Style.RESET_ALL}"


def _dim(text: str) -> str:
    return f"{Style.DIM}{text}{Style.RESET_ALL}"


def render_branch(branch: BranchInfo) -> List[str]:
    """Lines describing a single branch."""
    marker = _styled('● ', Fore.GREEN, bright=True) if branch.is_current else '  '
    lines = [f"{marker}{_styled(branch.name, Fore.CYAN, bright=True)}"]

    if branch.commit_info:
        lines.append(f"  📝 {_dim(branch.commit_info)}")

    if branch.merge_status is MergeStatus.MERGED:
        lines.append(f"  ✅ {_styled('Merged to main', Fore.GREEN)}")
    elif branch.merge_status is MergeStatus.NOT_MERGED:
        lines.append(f"  🔄 {_styled('Not merged to main', Fore.YELLOW)}")

    pr = branch.pull_request
    if pr is not None:
        draft = ' [draft]' if pr.draft else ''
        lines.append(f"  🔗 #{pr.number} {pr.title} ({pr.state.value}{draft}) {_dim(pr.url)}")

    if branch.remote_tracking:
        lines.append(f"  📡 {_styled(branch.remote_tracking, Fore.CYAN)}")
    else:
        lines.append(f"  📡 {_styled('No remote tracking', Fore.YELLOW)}")
    return lines


def render_branch_stats(branches: Sequence[BranchInfo]) -> str:
    """
    Render the branch statistics view.

    Returns:
        Text ready to print, ending in a newline
    """
    lines = [f"📊 {_styled('Branch Statistics', Fore.CYAN, bright=True)}", '']
    if not branches:
        lines.append(f"{_styled('⚠', Fore.YELLOW)} No branches found")
        return '\n'.join(lines) + '\n'
    for branch in branches:
        lines.extend(render_branch(branch))
        lines.append('')
    return '\n'.join(lines) + '\n'
