"""Diff rendering between trees, the index and HEAD."""

from difflib import unified_diff
from typing import Dict, List, Optional, Tuple

from xgit.core.hash import short_oid
from xgit.core.objects import flatten_tree

TreeMap = Dict[str, Tuple[str, str]]


class FileDiff:
    """The change to a single path between two snapshots."""

    def __init__(
        self,
        path: str,
        old: Optional[Tuple[str, str]],
        new: Optional[Tuple[str, str]],
        old_content: Optional[bytes],
        new_content: Optional[bytes],
    ):
        self.path = path
        self.old = old
        self.new = new
        self.old_content = old_content
        self.new_content = new_content

    @property
    def is_new(self) -> bool:
        return self.old is None

    @property
    def is_deleted(self) -> bool:
        return self.new is None

    @property
    def is_binary(self) -> bool:
        return any(b'\0' in (data or b'')[:8000] for data in (self.old_content, self.new_content))

    def _lines(self, content: Optional[bytes]) -> List[str]:
        if content is None:
            return []
        return content.decode('utf-8', errors='replace').splitlines(keepends=True)

    def hunk_lines(self) -> List[str]:
        """Unified diff body lines (without the file headers)."""
        lines = list(unified_diff(self._lines(self.old_content), self._lines(self.new_content), lineterm='', n=3))
        body = []
        for line in lines[2:]:
            if line.endswith('\n'):
                line = line[:-1]
            body.append(line)
        return body

    def stats(self) -> Tuple[int, int]:
        """(insertions, deletions)"""
        if self.is_binary:
            return 0, 0
        body = self.hunk_lines()
        return (
            sum(1 for l in body if l.startswith('+')),
            sum(1 for l in body if l.startswith('-')),
        )

    def render(self) -> str:
        """
        Render in ``git diff`` format.

        Example::

            diff --git a/file.txt b/file.txt
            index 83db48f..bf269f4 100644
            --- a/file.txt
            +++ b/file.txt
            @@ -1 +1 @@
            -old
            +new
        """
        out = [f"diff --git a/{self.path} b/{self.path}"]
        old_oid = short_oid(self.old[1]) if self.old else '0000000'
        new_oid = short_oid(self.new[1]) if self.new else '0000000'
        if self.is_new:
            out.append(f"new file mode {self.new[0]}")
            out.append(f"index {old_oid}..{new_oid}")
        elif self.is_deleted:
            out.append(f"deleted file mode {self.old[0]}")
            out.append(f"index {old_oid}..{new_oid}")
        else:
            if self.old[0] != self.new[0]:
                out.append(f"old mode {self.old[0]}")
                out.append(f"new mode {self.new[0]}")
                out.append(f"index {old_oid}..{new_oid}")
            else:
                out.append(f"index {old_oid}..{new_oid} {self.new[0]}")

        old_name = '/dev/null' if self.is_new else f"a/{self.path}"
        new_name = '/dev/null' if self.is_deleted else f"b/{self.path}"
        if self.is_binary:
            out.append(f"Binary files {old_name} and {new_name} differ")
            return '\n'.join(out) + '\n'

        body = self.hunk_lines()
        if body:
            out.append(f"--- {old_name}")
            out.append(f"+++ {new_name}")
            out.extend(body)
        return '\n'.join(out) + '\n'

    def __repr__(self) -> str:
        return f"FileDiff({self.path})"


class DiffEngine:
    """
    Computes diffs between snapshots of the repository.

    Supports:
    - Tree vs tree (flattened ``{path: (mode, oid)}`` maps)
    - Index vs HEAD (what the next commit would record)
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo

    def _content(self, entry: Optional[Tuple[str, str]]) -> Optional[bytes]:
        if entry is None:
            return None
        return self.repo.read_object(entry[1]).data

    def diff_maps(self, old: TreeMap, new: TreeMap) -> List[FileDiff]:
        """
        Diff two flattened trees.

        Returns:
            FileDiff for every changed path, sorted by path
        """
        diffs = []
        for path in sorted(set(old) | set(new)):
            if old.get(path) == new.get(path):
                continue
            diffs.append(FileDiff(
                path, old.get(path), new.get(path),
                self._content(old.get(path)), self._content(new.get(path)),
            ))
        return diffs

    def head_tree_map(self) -> TreeMap:
        head = self.repo.head_commit()
        if head is None:
            return {}
        return flatten_tree(self.repo, self.repo.read_commit(head).tree)

    def diff_index_to_head(self) -> List[FileDiff]:
        return self.diff_maps(self.head_tree_map(), self.repo.read_index().tree_map())

    def diff_commits(self, old: Optional[str], new: str) -> List[FileDiff]:
        """Diff two commits; old=None diffs against the empty tree."""
        old_map = flatten_tree(self.repo, self.repo.read_commit(old).tree) if old else {}
        new_map = flatten_tree(self.repo, self.repo.read_commit(new).tree)
        return self.diff_maps(old_map, new_map)

    @staticmethod
    def format(diffs: List[FileDiff]) -> str:
        return ''.join(d.render() for d in diffs)


def shortstat(diffs: List[FileDiff]) -> str:
    """
    Summarize diffs the way ``git diff --shortstat`` does.

    Example:
        '2 files changed, 3 insertions(+), 1 deletion(-)'
    """
    insertions = deletions = 0
    for diff in diffs:
        added, removed = diff.stats()
        insertions += added
        deletions += removed
    parts = [f"{len(diffs)} file{'' if len(diffs) == 1 else 's'} changed"]
    if insertions or not deletions:
        parts.append(f"{insertions} insertion{'' if insertions == 1 else 's'}(+)")
    if deletions:
        parts.append(f"{deletions} deletion{'' if deletions == 1 else 's'}(-)")
    return ', '.join(parts)
