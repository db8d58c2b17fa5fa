"""Ignore pattern matching for .gitignore and .git/info/exclude."""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class IgnorePattern:
    """A single gitignore pattern."""

    def __init__(self, pattern: str, negation: bool = False, directory_only: bool = False):
        """
        Args:
            pattern: Glob pattern with leading '!' and trailing '/' removed
            negation: Pattern re-includes matching paths
            directory_only: Pattern only matches directories
        """
        self.pattern = pattern
        self.negation = negation
        self.directory_only = directory_only
        self._regex = self._compile(pattern)

    @staticmethod
    def _compile(pattern: str) -> 're.Pattern':
        # A slash anywhere but the end anchors the pattern to the root
        anchored = '/' in pattern
        pattern = pattern.lstrip('/')

        out = []
        i = 0
        while i < len(pattern):
            c = pattern[i]
            if pattern.startswith('**/', i):
                out.append('(?:.*/)?')
                i += 3
            elif pattern.startswith('**', i):
                out.append('.*')
                i += 2
            elif c == '*':
                out.append('[^/]*')
                i += 1
            elif c == '?':
                out.append('[^/]')
                i += 1
            elif c == '[':
                end = pattern.find(']', i + 2)
                if end < 0:
                    out.append(re.escape(c))
                    i += 1
                    continue
                body = pattern[i + 1:end]
                if body.startswith('!'):
                    body = '^' + body[1:]
                out.append(f'[{body}]')
                i = end + 1
            else:
                out.append(re.escape(c))
                i += 1

        prefix = '^' if anchored else '(?:^|.*/)'
        return re.compile(prefix + ''.join(out) + '$')

    def matches(self, path: str, is_dir: bool = False) -> bool:
        """
        Check a path (relative to the repository root, '/'-separated).

        Directory-only patterns match the directory itself and anything
        below it.
        """
        parts = path.split('/')
        # Any matching parent directory excludes its whole subtree
        for i in range(1, len(parts)):
            if self._regex.match('/'.join(parts[:i])):
                return True
        if self.directory_only and not is_dir:
            return False
        return bool(self._regex.match(path))


class IgnoreMatcher:
    """Matches paths against an ordered list of patterns; last match wins."""

    def __init__(self):
        self.patterns: List[IgnorePattern] = []
        self._cache: Dict[Tuple[str, bool], bool] = {}

    def add_pattern(self, line: str) -> None:
        line = line.rstrip('\n').rstrip()
        if not line or line.startswith('#'):
            return
        negation = line.startswith('!')
        if negation:
            line = line[1:]
        directory_only = line.endswith('/')
        self.patterns.append(IgnorePattern(line.rstrip('/'), negation, directory_only))
        self._cache.clear()

    def load_file(self, path: Path) -> bool:
        """Load patterns from a file; returns False if it does not exist."""
        if not path.is_file():
            return False
        for line in path.read_text(encoding='utf-8', errors='replace').splitlines():
            self.add_pattern(line)
        return True

    def is_ignored(self, path: str, is_dir: bool = False) -> bool:
        path = path.replace('\\', '/')
        if path.startswith('./'):
            path = path[2:]
        key = (path, is_dir)
        if key not in self._cache:
            ignored = False
            for pattern in self.patterns:
                if pattern.matches(path, is_dir):
                    ignored = not pattern.negation
            self._cache[key] = ignored
        return self._cache[key]


def get_ignore_matcher(work_tree: Path, git_dir: Optional[Path] = None) -> IgnoreMatcher:
    """
    Build the matcher for a working tree.

    Loads ``.git/`` itself, ``.git/info/exclude`` and the root ``.gitignore``.
    """
    matcher = IgnoreMatcher()
    matcher.add_pattern('.git/')
    if git_dir is not None:
        matcher.load_file(git_dir / 'info' / 'exclude')
    matcher.load_file(work_tree / '.gitignore')
    return matcher
