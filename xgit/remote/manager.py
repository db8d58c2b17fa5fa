"""Remote repository operations: remotes config, fetch, push and pull."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from xgit.core.config import section_name
from xgit.core.hash import short_oid
from xgit.core.refs import HEADS_PREFIX, REMOTES_PREFIX, check_ref_name
from xgit.exceptions import (
    AlreadyExists,
    BranchNotFound,
    PushRejected,
    ReferenceNotFound,
    RemoteNotFound,
    XgitError,
)
from xgit.remote.refspec import Refspec
from xgit.remote.transport import LocalTransport, copy_objects
from xgit.utils.log import get_logger

logger = get_logger(__name__)

UP_TO_DATE_MESSAGE = 'Already up-to-date'


@dataclass(frozen=True)
class RemoteInfo:
    name: str
    url: str


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of a fetch.

    Attributes:
        remote: Remote fetched from
        received: Objects written to the local store
        total: Objects the remote offered
        updated: {local ref: (old oid or None, new oid)} for refs that moved
        pruned: Remote-tracking refs deleted because their branch is gone
    """
    remote: str
    received: int
    total: int
    updated: Dict[str, Tuple[Optional[str], str]] = field(default_factory=dict)
    pruned: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.received == 0:
            return UP_TO_DATE_MESSAGE
        return f"Fetched {self.received}/{self.total} objects from {self.remote}"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class PushResult:
    remote: str
    branch: str
    old: Optional[str]
    new: str
    forced: bool = False

    @property
    def up_to_date(self) -> bool:
        return self.old == self.new

    @property
    def message(self) -> str:
        if self.up_to_date:
            return 'Everything up-to-date'
        if self.old is None:
            return f"Pushed new branch {self.branch} to {self.remote} ({short_oid(self.new)})"
        sep = '...' if self.forced else '..'
        return f"Pushed {self.branch} to {self.remote} ({short_oid(self.old)}{sep}{short_oid(self.new)})"

    def __str__(self) -> str:
        return self.message


class RemoteManager:
    """
    Manages remote repository operations.

    Remotes live in ``[remote "<name>"]`` config sections with a url and
    one fetch refspec. Only local filesystem remotes can be synced.
    """

    def __init__(self, repo):
        """
        Args:
            repo: Repository instance
        """
        self.repo = repo

    @property
    def config(self):
        return self.repo.config

    # Remote configuration

    def add_remote(self, name: str, url: str) -> RemoteInfo:
        """
        Add a remote repository.

        Args:
            name: Remote name (e.g., 'origin')
            url: Remote URL (a local path or file:// URL)

        Raises:
            AlreadyExists: If a remote with that name exists
            InvalidReferenceName: If name cannot be used in a ref
        """
        check_ref_name(f'{REMOTES_PREFIX}{name}/HEAD')
        section = section_name('remote', name)
        if self.config.has_section(section):
            raise AlreadyExists(f"Remote '{name}' already exists", {'remote': name})
        self.config.set(section, 'url', url)
        self.config.set(section, 'fetch', str(Refspec.default_fetch(name)))
        logger.info(f"Added remote {name} -> {url}")
        return RemoteInfo(name, url)

    def set_remote_url(self, name: str, url: str) -> None:
        self.get_remote_url(name)
        self.config.set(section_name('remote', name), 'url', url)
        logger.info(f"Remote {name} now points at {url}")

    def remove_remote(self, name: str) -> None:
        """
        Remove a remote, its remote-tracking refs and any upstream
        settings that pointed at it.

        Raises:
            RemoteNotFound: If the remote does not exist
        """
        if not self.config.remove_section(section_name('remote', name)):
            raise RemoteNotFound(name)
        for short, _ in self.repo.refs.list_remote_branches(name):
            self.repo.refs.delete_ref(REMOTES_PREFIX + short)
        for branch in self.repo.branches.list_branches():
            section = section_name('branch', branch)
            if self.config.get(section, 'remote') == name:
                self.config.unset(section, 'remote')
                self.config.unset(section, 'merge')
        logger.info(f"Removed remote {name}")

    def remote_names(self) -> List[str]:
        return self.config.subsections('remote')

    def list_remotes(self) -> List[RemoteInfo]:
        """All remotes in config file order."""
        return [
            RemoteInfo(name, self.config.get(section_name('remote', name), 'url') or '')
            for name in self.remote_names()
        ]

    def get_remote_url(self, name: str) -> str:
        """
        Raises:
            RemoteNotFound: If the remote is not configured
        """
        url = self.config.get(section_name('remote', name), 'url')
        if not url:
            raise RemoteNotFound(name)
        return url

    def fetch_refspecs(self, name: str) -> List[Refspec]:
        value = self.config.get(section_name('remote', name), 'fetch')
        if not value:
            return [Refspec.default_fetch(name)]
        return [Refspec.parse(line) for line in value.splitlines() if line.strip()]

    def _transport(self, name: str) -> LocalTransport:
        return LocalTransport(self.get_remote_url(name), base_dir=self.repo.path)

    # Fetch

    def fetch(self, remote: str = 'origin', branch: Optional[str] = None, prune: bool = False) -> FetchResult:
        """
        Fetch updates from a remote repository.

        Downloads missing objects and updates remote-tracking refs. Local
        branches and the work tree are not touched.

        Args:
            remote: Name of remote to fetch from
            branch: Single branch to fetch (None fetches the configured refspecs)
            prune: Delete remote-tracking refs whose branch no longer exists

        Returns:
            FetchResult

        Raises:
            RemoteNotFound: If the remote is not configured
            ReferenceNotFound: If branch does not exist on the remote
            UnsupportedProtocol: If the remote URL is not a local path
        """
        transport = self._transport(remote)
        heads = transport.list_heads()
        refspecs = self.fetch_refspecs(remote)

        if branch:
            src = HEADS_PREFIX + branch
            if src not in heads:
                raise ReferenceNotFound(f'{remote}/{branch}', f"Couldn't find remote ref {src} on {remote}")
            mapping = {src: Refspec(src, f'{REMOTES_PREFIX}{remote}/{branch}', force=True)}
        else:
            mapping = {}
            for ref in heads:
                for spec in refspecs:
                    if spec.matches(ref):
                        mapping[ref] = spec
                        break

        received, total = copy_objects(transport.repo, self.repo, [heads[src] for src in mapping])

        updated = {}
        for src, spec in mapping.items():
            dst = spec.expand(src)
            new = heads[src]
            old = self.repo.refs.resolve(dst)
            if old == new:
                continue
            if old and not spec.force and not self.repo.graph.is_ancestor(old, new):
                logger.warning(f"Rejected non-fast-forward update of {dst}")
                continue
            self.repo.refs.update_ref(dst, new)
            updated[dst] = (old, new)
            logger.debug(f"{dst}: {short_oid(old) if old else 'new'} -> {short_oid(new)}")

        pruned = self._prune_tracking_refs(remote, heads, refspecs) if prune else []

        result = FetchResult(remote, received, total, updated, pruned)
        logger.info(f"{result.message} ({len(updated)} ref(s) updated)")
        return result

    def _prune_tracking_refs(self, remote: str, heads: Dict[str, str], refspecs: List[Refspec]) -> List[str]:
        expected = set()
        for ref in heads:
            for spec in refspecs:
                dst = spec.expand(ref)
                if dst:
                    expected.add(dst)
        pruned = []
        for ref in sorted(self.repo.refs.list_refs(f'{REMOTES_PREFIX}{remote}/')):
            if ref.endswith('/HEAD') or ref in expected:
                continue
            self.repo.refs.delete_ref(ref)
            pruned.append(ref[len(REMOTES_PREFIX):])
            logger.info(f"Pruned {ref[len(REMOTES_PREFIX):]}")
        return pruned

    # Push

    def push(
        self,
        remote: str = 'origin',
        branch: Optional[str] = None,
        force: bool = False,
        set_upstream: bool = False,
    ) -> PushResult:
        """
        Push a local branch to a remote repository.

        Args:
            remote: Name of remote to push to
            branch: Branch to push (None pushes the current branch)
            force: Allow non-fast-forward updates
            set_upstream: Record remote/branch as the branch's upstream

        Returns:
            PushResult

        Raises:
            BranchNotFound: If the branch does not exist locally
            PushRejected: If the update is not a fast-forward and not forced
            XgitError: If the branch is checked out in a non-bare remote
        """
        branch = branch or self.repo.branches.current_branch()
        ref = HEADS_PREFIX + branch
        tip = self.repo.refs.resolve(ref)
        if tip is None:
            raise BranchNotFound(branch)

        dest = self._transport(remote).repo
        old = dest.refs.resolve(ref)
        if old != tip:
            if old and not force and not (self.repo.object_exists(old) and self.repo.graph.is_ancestor(old, tip)):
                raise PushRejected(remote, branch)
            if not dest.is_bare and dest.refs.get_current_branch() == branch:
                raise XgitError(
                    f"Refusing to update checked out branch '{branch}' in non-bare remote '{remote}'",
                    {'remote': remote, 'branch': branch},
                )
            copy_objects(self.repo, dest, [tip])
            dest.refs.update_ref(ref, tip)

        self.repo.refs.update_ref(f'{REMOTES_PREFIX}{remote}/{branch}', tip)
        if set_upstream:
            self.repo.branches.set_upstream(branch, remote)

        result = PushResult(remote, branch, old, tip, forced=force and old is not None and old != tip)
        logger.info(result.message)
        return result

    def push_current_branch(self, remote: str = 'origin', force: bool = False) -> PushResult:
        return self.push(remote, self.repo.branches.current_branch(), force=force)

    def push_to_origin(self) -> PushResult:
        return self.push_current_branch('origin')

    # Pull

    def pull(self, remote: str = 'origin', branch: Optional[str] = None):
        """
        Fetch a branch and merge it into the current branch.

        Args:
            remote: Name of remote to pull from
            branch: Remote branch (defaults to the current branch's name)

        Returns:
            MergeResult worded for pull

        Raises:
            Everything fetch and MergeEngine.merge raise
        """
        current = self.repo.branches.current_branch()
        branch = branch or current
        self.fetch(remote, branch)
        return self.repo.merge.merge(
            f'{remote}/{branch}',
            message=f"Merge branch '{remote}/{branch}' into {current}",
            operation='pull',
        )
