"""Ignore policy: user-requested exclusions plus rename-aware filtering."""

import os
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set

from .exceptions import PathResolutionError


def absolute_path(path: str) -> str:
    """
    Make a path absolute without resolving symlinks.

    Raises:
        PathResolutionError: If the working directory is unavailable
    """
    try:
        return os.path.abspath(path)
    except OSError as e:
        raise PathResolutionError(f"unable to get current working directory for '{path}': {e}") from e


class Ignorer(ABC):
    """Decides whether a change to a path should be dropped."""

    @abstractmethod
    def is_ignored(self, path: str) -> bool:
        ...


class UserIgnorer(Ignorer):
    """
    Ignores the paths the user asked to exclude, and everything below them.

    Attributes:
        ignored: Absolute ignored paths for exact matching
        ignored_dirs: The same paths with a trailing separator, for
            descendant matching
    """

    def __init__(self, ignored: Set[str], ignored_dirs: List[str]):
        self.ignored = ignored
        self.ignored_dirs = ignored_dirs

    def is_ignored(self, path: str) -> bool:
        full_path = absolute_path(path)
        if full_path in self.ignored:
            return True
        return any(full_path.startswith(prefix) for prefix in self.ignored_dirs)

    def __len__(self) -> int:
        return len(self.ignored)


def create_user_ignorer(ignored_paths: Iterable[str]) -> UserIgnorer:
    """
    Build a UserIgnorer from raw ignore strings.

    Blank entries are skipped and surrounding whitespace is trimmed.

    Args:
        ignored_paths: Paths (relative or absolute) to ignore

    Returns:
        The ignorer

    Raises:
        PathResolutionError: If a relative entry cannot be made absolute
    """
    ignored: Set[str] = set()
    ignored_dirs: List[str] = []
    for entry in ignored_paths:
        entry = entry.strip()
        if not entry:
            continue
        path = absolute_path(entry)
        if path in ignored:
            continue
        ignored.add(path)
        ignored_dirs.append(path if path.endswith(os.sep) else path + os.sep)
    return UserIgnorer(ignored, ignored_dirs)


class SmartIgnorer(Ignorer):
    """
    Layers hidden-file and rename-directory suppression over a UserIgnorer.

    Editors that save by writing a temp file and renaming it over the
    original make the watched path vanish for a moment, and a per-file
    subscription never fires again after that. The parent directory is
    watched too so the file's return is seen; this ignorer then drops every
    other child of such a directory.
    """

    def __init__(
        self,
        user_ignorer: UserIgnorer,
        included_hidden_files: Optional[Set[str]] = None,
        rename_dirs: Optional[Set[str]] = None,
        rename_children: Optional[Dict[str, Set[str]]] = None,
    ):
        """
        Initialize the smart ignorer.

        Args:
            user_ignorer: Ignorer for explicitly excluded paths
            included_hidden_files: Watched paths whose base name starts with "."
            rename_dirs: Parent directories watched only for rename tracking
            rename_children: For each rename dir, the children to let through
        """
        self.user_ignorer = user_ignorer
        self.included_hidden_files = included_hidden_files or set()
        self.rename_dirs = rename_dirs or set()
        self.rename_children = rename_children or {}

    def is_ignored(self, path: str) -> bool:
        if self.user_ignorer.is_ignored(path):
            return True

        full_path = absolute_path(path)
        dir_path, base_name = os.path.split(full_path)

        if base_name.startswith(".") and full_path not in self.included_hidden_files:
            return True

        if dir_path in self.rename_dirs:
            return full_path not in self.rename_children.get(dir_path, ())

        return False
