"""Repository handle: opening, initialization and object access."""

import os
from pathlib import Path
from typing import Optional, Union

from xgit.core.config import Config
from xgit.core.index import Index
from xgit.core.objects import Commit, GitObject
from xgit.core.store import LooseObjectStore, ObjectStore
from xgit.exceptions import AlreadyExists, CorruptObject, MissingIdentity, NotARepository
from xgit.utils.log import get_logger

logger = get_logger(__name__)

DEFAULT_BRANCH = 'master'

PathLike = Union[str, Path]


def _is_git_dir(path: Path) -> bool:
    return (path / 'HEAD').is_file() and (path / 'objects').is_dir() and (path / 'refs').is_dir()


class Repository:
    """
    An open repository.

    One instance is the session handle for everything done to a
    repository: the object store, refs, index and config all hang off it.
    A bare repository has no work tree, and operations that would touch
    files skip that step.
    """

    def __init__(self, git_dir: PathLike, work_tree: Optional[PathLike] = None):
        """
        Args:
            git_dir: The ``.git`` directory (or the bare repository root)
            work_tree: Work tree root, or None for a bare repository
        """
        self.git_dir = Path(git_dir).resolve()
        self.work_tree = Path(work_tree).resolve() if work_tree is not None else None
        self.objects_dir = self.git_dir / 'objects'
        self.index_file = self.git_dir / 'index'
        self.config_file = self.git_dir / 'config'

        self.store: ObjectStore = LooseObjectStore(self.objects_dir)

        # Managers are created lazily to avoid circular imports
        self._ref_manager = None
        self._config = None
        self._graph = None
        self._branches = None
        self._merge_engine = None
        self._remote_manager = None
        self._staging = None

    @property
    def is_bare(self) -> bool:
        return self.work_tree is None

    @property
    def path(self) -> Path:
        """The directory a user would call the repository."""
        return self.work_tree if self.work_tree is not None else self.git_dir

    @property
    def refs(self):
        """Get RefManager instance."""
        if self._ref_manager is None:
            from xgit.core.refs import RefManager
            self._ref_manager = RefManager(self)
        return self._ref_manager

    @property
    def config(self) -> Config:
        if self._config is None:
            self._config = Config(self.config_file)
        return self._config

    @property
    def graph(self):
        """Get CommitGraph instance."""
        if self._graph is None:
            from xgit.operations.graph import CommitGraph
            self._graph = CommitGraph(self)
        return self._graph

    @property
    def branches(self):
        """Get BranchManager instance."""
        if self._branches is None:
            from xgit.operations.branch import BranchManager
            self._branches = BranchManager(self)
        return self._branches

    @property
    def merge(self):
        """Get MergeEngine instance."""
        if self._merge_engine is None:
            from xgit.operations.merge import MergeEngine
            self._merge_engine = MergeEngine(self)
        return self._merge_engine

    @property
    def remote(self):
        """Get RemoteManager instance."""
        if self._remote_manager is None:
            from xgit.remote.manager import RemoteManager
            self._remote_manager = RemoteManager(self)
        return self._remote_manager

    @property
    def staging(self):
        """Get Staging instance."""
        if self._staging is None:
            from xgit.operations.staging import Staging
            self._staging = Staging(self)
        return self._staging

    # Opening and creating

    @classmethod
    def open(cls, path: PathLike = '.') -> 'Repository':
        """
        Open the repository at path.

        Args:
            path: Work tree root (containing ``.git``) or bare repository root

        Returns:
            Repository

        Raises:
            NotARepository: If no repository exists exactly at path
        """
        path = Path(path).resolve()
        dot_git = path / '.git'
        if dot_git.is_file():
            # Linked work trees and submodules use a 'gitdir: <path>' file
            content = dot_git.read_text().strip()
            if content.startswith('gitdir:'):
                git_dir = Path(content[len('gitdir:'):].strip())
                if not git_dir.is_absolute():
                    git_dir = path / git_dir
                if _is_git_dir(git_dir):
                    return cls(git_dir, path)
        if dot_git.is_dir() and _is_git_dir(dot_git):
            return cls(dot_git, path)
        if _is_git_dir(path):
            # A '.git' directory opened directly still has its work tree
            if path.name == '.git' and not Config(path / 'config').get_bool('core', 'bare'):
                return cls(path, path.parent)
            return cls(path, None)
        raise NotARepository(path)

    @classmethod
    def discover(cls, path: PathLike = '.') -> 'Repository':
        """
        Find the repository containing path by searching up the directory tree.

        Raises:
            NotARepository: If no parent directory holds a repository
        """
        start = Path(path).resolve()
        for candidate in [start, *start.parents]:
            try:
                return cls.open(candidate)
            except NotARepository:
                continue
        raise NotARepository(start)

    @classmethod
    def init(cls, path: PathLike = '.', initial_branch: Optional[str] = None) -> 'Repository':
        """
        Create a repository with a work tree.

        Creates the ``.git`` directory structure::

            .git/
            ├── objects/       # Object database
            ├── refs/
            │   ├── heads/     # Branch references
            │   ├── tags/      # Tag references
            │   └── remotes/   # Remote-tracking references
            ├── info/exclude   # Local ignore patterns
            ├── HEAD           # ref: refs/heads/<default branch>
            └── config

        Args:
            path: Work tree root (created if missing)
            initial_branch: Branch HEAD points at; defaults to
                ``init.defaultBranch`` or 'master'

        Returns:
            Repository with an unborn HEAD

        Raises:
            AlreadyExists: If ``path/.git`` already exists
        """
        path = Path(path).resolve()
        git_dir = path / '.git'
        if git_dir.exists():
            raise AlreadyExists(f"Repository already exists at {git_dir}", {'path': str(git_dir)})
        path.mkdir(parents=True, exist_ok=True)
        cls._create_layout(git_dir, bare=False, initial_branch=initial_branch)
        logger.info(f"Initialized empty repository in {git_dir}")
        return cls(git_dir, path)

    @classmethod
    def init_bare(cls, path: PathLike, initial_branch: Optional[str] = None) -> 'Repository':
        """
        Create a bare repository directly in path.

        Raises:
            AlreadyExists: If path already holds a repository
        """
        path = Path(path).resolve()
        if _is_git_dir(path) or (path / '.git').exists():
            raise AlreadyExists(f"Repository already exists at {path}", {'path': str(path)})
        path.mkdir(parents=True, exist_ok=True)
        cls._create_layout(path, bare=True, initial_branch=initial_branch)
        logger.info(f"Initialized empty bare repository in {path}")
        return cls(path, None)

    @staticmethod
    def _create_layout(git_dir: Path, bare: bool, initial_branch: Optional[str]) -> None:
        from xgit.core.refs import check_ref_name

        branch = initial_branch or Config().get('init', 'defaultBranch') or DEFAULT_BRANCH
        check_ref_name(f'refs/heads/{branch}')

        for sub in ('objects/info', 'objects/pack', 'refs/heads', 'refs/tags', 'refs/remotes', 'info'):
            (git_dir / sub).mkdir(parents=True, exist_ok=True)
        (git_dir / 'HEAD').write_text(f'ref: refs/heads/{branch}\n')
        (git_dir / 'info' / 'exclude').write_text('# git ls-files --others --exclude-from=.git/info/exclude\n')
        (git_dir / 'description').write_text(
            "Unnamed repository; edit this file 'description' to name the repository.\n"
        )

        config = '[core]\n\trepositoryformatversion = 0\n\tfilemode = true\n'
        config += f'\tbare = {"true" if bare else "false"}\n'
        if not bare:
            config += '\tlogallrefupdates = true\n'
        (git_dir / 'config').write_text(config)

    # Objects

    def read_object(self, oid: str) -> GitObject:
        """
        Read an object from the store.

        Raises:
            ObjectNotFound: If oid is not stored
        """
        return self.store.read(oid)

    def write_object(self, obj: GitObject) -> str:
        return self.store.write(obj)

    def object_exists(self, oid: str) -> bool:
        return self.store.contains(oid)

    def read_commit(self, oid: str) -> Commit:
        """
        Read an object that must be a commit.

        Raises:
            ObjectNotFound: If oid is not stored
            CorruptObject: If oid is not a commit
        """
        obj = self.read_object(oid)
        if not isinstance(obj, Commit):
            raise CorruptObject(f"Object {oid} is a {obj.type}, not a commit", {'oid': oid})
        return obj

    def head_commit(self) -> Optional[str]:
        """Commit id at HEAD, or None while unborn."""
        return self.refs.resolve_head()

    def read_index(self) -> Index:
        index = Index()
        index.read(self.index_file)
        return index

    def write_index(self, index: Index) -> None:
        index.write(self.index_file)

    # Identity

    def signature(self) -> str:
        """
        The identity used to author commits, as 'Name <email>'.

        Reads GIT_AUTHOR_NAME / GIT_AUTHOR_EMAIL first, then ``user.name``
        and ``user.email`` from config.

        Raises:
            MissingIdentity: Naming the value that is missing and how to set it
        """
        name = os.environ.get('GIT_AUTHOR_NAME') or self.config.get('user', 'name')
        if not name:
            raise MissingIdentity('name')
        email = os.environ.get('GIT_AUTHOR_EMAIL') or self.config.get('user', 'email')
        if not email:
            raise MissingIdentity('email')
        return f"{name} <{email}>"

    def __repr__(self) -> str:
        return f"Repository(path={self.path}, bare={self.is_bare})"
