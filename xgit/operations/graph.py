"""Commit graph traversal: ordered walks, ancestry and merge bases."""

import heapq
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set

from xgit.core.objects import Commit
from xgit.exceptions import UnrelatedHistories


@dataclass(frozen=True)
class CommitInfo:
    """Read-only projection of a commit for display."""
    hash: str
    message: str

    @property
    def summary(self) -> str:
        lines = self.message.splitlines()
        return lines[0] if lines else ''


class CommitWalk:
    """
    A restartable walk over commits.

    Nothing is read until iteration starts, and every ``iter()`` walks the
    graph afresh, so refs moved between iterations are picked up.
    """

    def __init__(self, graph: 'CommitGraph', start: Optional[Iterable[str]] = None):
        self.graph = graph
        self._start = list(start) if start is not None else None

    def _start_oids(self) -> List[str]:
        if self._start is not None:
            return self._start
        head = self.graph.repo.head_commit()
        return [head] if head else []

    def __iter__(self) -> Iterator[CommitInfo]:
        for commit in self.graph.walk(self._start_oids()):
            yield CommitInfo(hash=commit.oid, message=commit.message)

    def __repr__(self) -> str:
        return f"CommitWalk(start={self._start or 'HEAD'})"


class CommitGraph:
    """
    Walks the commit DAG of a repository.

    Commits are read on demand and cached for the lifetime of the graph;
    commits are immutable so the cache never goes stale.
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo
        self._commits: Dict[str, Commit] = {}

    def commit(self, oid: str) -> Commit:
        if oid not in self._commits:
            self._commits[oid] = self.repo.read_commit(oid)
        return self._commits[oid]

    def parents(self, oid: str) -> List[str]:
        return self.commit(oid).parents

    def list_commits(self) -> CommitWalk:
        """
        Commits reachable from HEAD, newest first in topological order.

        Returns:
            CommitWalk: empty while HEAD is unborn
        """
        return CommitWalk(self)

    def walk(self, start_oids: Iterable[str]) -> Iterator[Commit]:
        """
        Yield every commit reachable from start_oids.

        A commit is never yielded before any of its descendants in the walk.
        Among commits whose descendants have all been yielded, the newest
        committer time goes first (object id breaks exact ties).

        Args:
            start_oids: Commit ids to start from

        Yields:
            Commit objects
        """
        reachable = self.ancestors(*start_oids)

        # Number of not-yet-yielded children of each reachable commit
        pending_children: Dict[str, int] = {oid: 0 for oid in reachable}
        for oid in reachable:
            for parent in set(self.parents(oid)):
                pending_children[parent] += 1

        ready = [self._heap_key(oid) for oid, count in pending_children.items() if count == 0]
        heapq.heapify(ready)
        while ready:
            _, oid = heapq.heappop(ready)
            commit = self.commit(oid)
            yield commit
            for parent in set(commit.parents):
                pending_children[parent] -= 1
                if pending_children[parent] == 0:
                    heapq.heappush(ready, self._heap_key(parent))

    def _heap_key(self, oid: str):
        return (-self.commit(oid).committer_time, oid)

    def ancestors(self, *oids: str) -> Set[str]:
        """
        All commits reachable from oids, including the oids themselves.

        Args:
            oids: Starting commit ids

        Returns:
            Set of commit ids
        """
        seen: Set[str] = set()
        stack = [oid for oid in oids if oid]
        while stack:
            oid = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            stack.extend(p for p in self.parents(oid) if p not in seen)
        return seen

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ancestor is reachable from descendant (or equal to it)."""
        if ancestor == descendant:
            return True
        return ancestor in self.ancestors(descendant)

    def merge_base(self, first: str, second: str) -> str:
        """
        Find the best common ancestor of two commits.

        A best common ancestor is a common ancestor that is not an ancestor
        of any other common ancestor. Criss-cross histories can have several;
        the one with the newest committer time wins, then the lowest id.

        Args:
            first: Commit id
            second: Commit id

        Returns:
            Commit id of the merge base

        Raises:
            UnrelatedHistories: If the commits share no ancestor
        """
        if first == second:
            return first

        common = self.ancestors(first) & self.ancestors(second)
        if not common:
            raise UnrelatedHistories(first, second)

        # Anything reachable from a parent of a common ancestor is not "best"
        dominated = self.ancestors(*[p for oid in common for p in self.parents(oid)])
        candidates = common - dominated
        return min(candidates, key=lambda oid: (-self.commit(oid).committer_time, oid))
