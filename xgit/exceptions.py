"""Exception hierarchy for xgit.

Every failure the core can produce is an ``XgitError`` subclass carrying a
human-readable message plus a ``details`` dict naming the refs, paths or
remotes involved. Only the CLI boundary turns these into exit codes.
"""

from typing import Any, Dict, List, Optional


class XgitError(Exception):
    """Base exception for all xgit errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotARepository(XgitError):
    """No repository exists at the given path."""

    def __init__(self, path):
        super().__init__(f"Not a git repository: {path}", {'path': str(path)})
        self.path = path


class AlreadyExists(XgitError):
    """Something that must be created is already present."""

    pass


class MissingIdentity(XgitError):
    """user.name or user.email is not configured."""

    HINTS = {
        'name': 'git config user.name "Your Name"',
        'email': 'git config user.email "you@example.com"',
    }

    def __init__(self, key: str):
        super().__init__(
            f"Missing user.{key} in git config. Run: {self.HINTS[key]}",
            {'key': f'user.{key}'},
        )
        self.key = key


class ReferenceNotFound(XgitError):
    """A branch, remote, HEAD or other reference could not be resolved."""

    def __init__(self, ref: str, message: Optional[str] = None):
        super().__init__(message or f"Reference '{ref}' not found", {'ref': ref})
        self.ref = ref


class BranchNotFound(ReferenceNotFound):
    """A local branch does not exist."""

    def __init__(self, branch: str):
        super().__init__(branch, f"Branch '{branch}' not found")
        self.branch = branch


class RemoteNotFound(ReferenceNotFound):
    """A remote name is not configured."""

    def __init__(self, remote: str):
        super().__init__(remote, f"Remote '{remote}' not found")
        self.remote = remote


class MainNotFound(ReferenceNotFound):
    """Neither a main nor a master branch exists."""

    def __init__(self):
        super().__init__('main', "Neither 'main' nor 'master' branch found")


class ObjectNotFound(ReferenceNotFound):
    """An object id is not present in the object store."""

    def __init__(self, oid: str):
        super().__init__(oid, f"Object {oid} not found")
        self.oid = oid


class CorruptObject(XgitError):
    """An object or index file on disk could not be decoded."""

    pass


class InvalidReferenceName(XgitError):
    """A proposed ref name violates git's naming rules."""

    def __init__(self, name: str):
        super().__init__(f"'{name}' is not a valid reference name", {'name': name})
        self.name = name


class BranchAlreadyExists(XgitError):
    """A branch with this name already exists."""

    def __init__(self, branch: str):
        super().__init__(f"Branch '{branch}' already exists", {'branch': branch})
        self.branch = branch


class DetachedHead(XgitError):
    """HEAD points directly at a commit instead of a branch."""

    def __init__(self):
        super().__init__("HEAD is detached (not pointing to a branch)")


class UnrelatedHistories(XgitError):
    """Two commits share no common ancestor."""

    def __init__(self, first: str, second: str):
        super().__init__(
            f"No common ancestor between {first[:7]} and {second[:7]}",
            {'commits': [first, second]},
        )


class MergeConflict(XgitError):
    """A three-way merge stopped on conflicting edits."""

    def __init__(self, paths: List[str], operation: str = 'merge'):
        listing = ', '.join(paths)
        super().__init__(
            f"Merge conflicts detected during {operation} in: {listing}. "
            "Please resolve conflicts and commit manually.",
            {'paths': list(paths)},
        )
        self.paths = list(paths)


class UnsupportedMergeOutcome(XgitError):
    """Merge analysis produced a result the engine does not handle."""

    pass


class CheckoutConflict(XgitError):
    """A checkout would overwrite uncommitted local changes."""

    def __init__(self, paths: List[str], operation: str = 'checkout'):
        super().__init__(
            "Your local changes to the following files would be overwritten "
            f"by {operation}: {', '.join(paths)}",
            {'paths': list(paths), 'operation': operation},
        )
        self.paths = list(paths)


class LockError(XgitError):
    """Another process holds the lock on a file we need to update."""

    def __init__(self, path):
        super().__init__(
            f"Unable to create '{path}': File exists. Another git process "
            "seems to be running in this repository.",
            {'path': str(path)},
        )
        self.path = path


class PushRejected(XgitError):
    """The remote branch cannot be fast-forwarded to the pushed commit."""

    def __init__(self, remote: str, branch: str):
        super().__init__(
            f"Push to '{remote}/{branch}' rejected: not a fast-forward. "
            "Pull the latest changes first.",
            {'remote': remote, 'branch': branch},
        )


class UnsupportedProtocol(XgitError):
    """The remote URL uses a transport xgit does not speak."""

    def __init__(self, url: str, protocol: str):
        super().__init__(
            f"Protocol '{protocol}' is not supported for '{url}'; "
            "only local paths and file:// URLs are",
            {'url': url, 'protocol': protocol},
        )
