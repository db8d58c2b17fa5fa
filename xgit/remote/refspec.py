"""Refspecs: ``[+]<src>:<dst>`` mappings from remote refs to local refs."""

from dataclasses import dataclass
from typing import Optional

from xgit.exceptions import InvalidReferenceName


@dataclass(frozen=True)
class Refspec:
    """
    A parsed refspec.

    ``+refs/heads/*:refs/remotes/origin/*`` maps every remote branch onto a
    remote-tracking ref, allowing non-fast-forward updates (the '+').
    """
    src: str
    dst: str
    force: bool = False

    @classmethod
    def parse(cls, spec: str) -> 'Refspec':
        """
        Parse a refspec string.

        Raises:
            InvalidReferenceName: For malformed specs or mismatched globs
        """
        spec = spec.strip()
        force = spec.startswith('+')
        if force:
            spec = spec[1:]
        src, sep, dst = spec.partition(':')
        if not src or (sep and not dst):
            raise InvalidReferenceName(spec)
        dst = dst or src
        if src.count('*') > 1 or src.count('*') != dst.count('*'):
            raise InvalidReferenceName(spec)
        return cls(src, dst, force)

    @classmethod
    def default_fetch(cls, remote: str) -> 'Refspec':
        return cls('refs/heads/*', f'refs/remotes/{remote}/*', force=True)

    @property
    def is_glob(self) -> bool:
        return '*' in self.src

    def matches(self, ref: str) -> bool:
        if not self.is_glob:
            return ref == self.src
        prefix, _, suffix = self.src.partition('*')
        return ref.startswith(prefix) and ref.endswith(suffix) and len(ref) >= len(prefix) + len(suffix)

    def expand(self, ref: str) -> Optional[str]:
        """
        Map a source ref to its destination.

        Returns:
            Destination ref, or None if ref does not match
        """
        if not self.matches(ref):
            return None
        if not self.is_glob:
            return self.dst
        prefix, _, suffix = self.src.partition('*')
        middle = ref[len(prefix):len(ref) - len(suffix)]
        return self.dst.replace('*', middle, 1)

    def __str__(self) -> str:
        return f"{'+' if self.force else ''}{self.src}:{self.dst}"
