"""Builds the watch set for user paths and starts event dispatch."""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from .config import WatcherConfig
from .digest import digest
from .event_processor import EventDispatcher
from .exceptions import WatcherError
from .fs_watcher import Notifier, WatchdogNotifier
from .ignore import SmartIgnorer, UserIgnorer, absolute_path, create_user_ignorer
from .models import DigestResult
from .queue import EventChannel

logger = logging.getLogger(__name__)


@dataclass
class WatchSet:
    """
    Registered user paths and the state derived from them.

    Attributes:
        paths: Absolute watched path -> initial digest, in registration order
        user_ignorer: Ignorer for explicitly excluded paths
        included_hidden_files: Watched paths whose base name starts with "."
        rename_dirs: Parent directories registered only for rename tracking
        rename_children: For each rename dir, the watched children inside it
    """
    paths: Dict[str, DigestResult]
    user_ignorer: UserIgnorer
    included_hidden_files: Set[str] = field(default_factory=set)
    rename_dirs: Set[str] = field(default_factory=set)
    rename_children: Dict[str, Set[str]] = field(default_factory=dict)

    def smart_ignorer(self) -> SmartIgnorer:
        return SmartIgnorer(
            self.user_ignorer,
            included_hidden_files=self.included_hidden_files,
            rename_dirs=self.rename_dirs,
            rename_children=self.rename_children,
        )


def build_watch_set(
    input_paths: Iterable[str],
    ignored_paths: Iterable[str],
    notifier: Notifier,
    config: Optional[WatcherConfig] = None,
) -> WatchSet:
    """
    Register user paths with a notifier and derive rename-tracking state.

    Paths that are both watched and ignored are ignored. Each watched path
    whose parent directory is not itself watched also gets its parent
    registered, so the path is seen again after an editor renames it away
    and back.

    Args:
        input_paths: Paths to watch, in order
        ignored_paths: Paths to exclude, with everything below them
        notifier: Notification subsystem to register with
        config: Watcher configuration

    Returns:
        The populated WatchSet

    Raises:
        PathResolutionError: If a path cannot be made absolute
        RegistrationError: If the notifier refuses a path

    The notifier is closed before any error propagates.
    """
    config = config or WatcherConfig()
    try:
        user_ignorer = create_user_ignorer(ignored_paths)

        paths: Dict[str, DigestResult] = {}
        for path in input_paths:
            full_path = absolute_path(path)
            if full_path in paths or user_ignorer.is_ignored(full_path):
                continue
            notifier.add(full_path)
            paths[full_path] = digest(full_path, config.max_hashed_file_size, config.hash_algorithm)

        watch_set = WatchSet(paths=paths, user_ignorer=user_ignorer)
        for full_path in paths:
            dir_path, base_name = os.path.split(full_path)
            if base_name.startswith("."):
                watch_set.included_hidden_files.add(full_path)

            if dir_path and dir_path not in paths:
                if dir_path not in watch_set.rename_dirs:
                    notifier.add(dir_path)
                    watch_set.rename_dirs.add(dir_path)
                watch_set.rename_children.setdefault(dir_path, set()).add(full_path)
    except WatcherError:
        notifier.close()
        raise

    return watch_set


class WatchSession:
    """
    A running watch: its watch set, notifier and dispatch thread.

    Closing the notifier is the only way to stop a watch; the dispatcher
    then closes the output channel.
    """

    def __init__(
        self,
        watch_set: WatchSet,
        notifier: Notifier,
        dispatcher: EventDispatcher,
        config: WatcherConfig,
    ):
        self.watch_set = watch_set
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.config = config

    @property
    def paths(self) -> Dict[str, DigestResult]:
        return self.watch_set.paths

    @property
    def ignorer(self) -> SmartIgnorer:
        return self.dispatcher.ignorer

    @property
    def output(self) -> EventChannel:
        return self.dispatcher.output

    @property
    def is_running(self) -> bool:
        return self.dispatcher.is_running

    def close(self) -> None:
        """Close the subscription and wait for dispatch to wind down."""
        self.notifier.close()
        self.wait(self.config.join_timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the dispatch loop to stop.

        Returns:
            True if it has stopped
        """
        return self.dispatcher.join(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def watch(
    input_paths: Iterable[str],
    ignored_paths: Iterable[str],
    output: EventChannel,
    config: Optional[WatcherConfig] = None,
    notifier: Optional[Notifier] = None,
) -> WatchSession:
    """
    Watch paths and forward filtered change events to ``output``.

    Returns as soon as every path is registered; dispatch runs on a
    background thread until the session (its notifier) is closed.

    Args:
        input_paths: Paths to watch
        ignored_paths: Paths to exclude, with everything below them
        output: Channel receiving Events; closed when the watch ends
        config: Watcher configuration
        notifier: Notification subsystem (defaults to a WatchdogNotifier)

    Returns:
        The running WatchSession; ``session.paths`` holds initial digests

    Raises:
        PathResolutionError: If a path cannot be made absolute
        NotifierError: If the notification subsystem cannot be created
        RegistrationError: If a path or derived directory cannot be watched
    """
    config = config or WatcherConfig()
    if notifier is None:
        notifier = WatchdogNotifier(
            buffer_size=config.event_buffer_size,
            join_timeout=config.join_timeout,
        )

    watch_set = build_watch_set(input_paths, ignored_paths, notifier, config)

    dispatcher = EventDispatcher(
        notifier.messages,
        output,
        watch_set.smart_ignorer(),
        config,
        fingerprints=watch_set.paths,
    )
    dispatcher.start()

    logger.info(
        f"Watching {len(watch_set.paths)} path(s), "
        f"{len(watch_set.rename_dirs)} rename-tracking dir(s)"
    )
    return WatchSession(watch_set, notifier, dispatcher, config)
