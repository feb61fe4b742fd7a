"""Filesystem notification subsystem built on the watchdog library."""

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    DirModifiedEvent,
)

from .exceptions import (
    ChannelClosedError,
    NotifierClosedError,
    NotifierError,
    RegistrationError,
)
from .models import EventKind, RawEvent
from .queue import EventChannel

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """
    Delivers raw per-path notifications for registered paths.

    Events and errors share one FIFO channel, ``messages``: each item is a
    RawEvent, an exception, or None (the owner closed the notifier). The
    channel is closed when the notifier is closed.

    Subclasses implement ``_subscribe`` and ``_shutdown``.
    """

    def __init__(self, buffer_size: int = 0):
        """
        Initialize the notifier.

        Args:
            buffer_size: Capacity of the message channel (0 = unbounded);
                producers block while it is full
        """
        self.messages = EventChannel(buffer_size)
        self._watched: List[str] = []
        self._closed = False
        self._lock = threading.Lock()

    def add(self, path: str) -> None:
        """
        Register a path for notifications.

        Args:
            path: Absolute path of a file or directory

        Raises:
            NotifierClosedError: If the notifier is closed
            RegistrationError: If the path cannot be watched
        """
        with self._lock:
            if self._closed:
                raise NotifierClosedError(f"unable to watch '{path}': notifier is closed")
            self._subscribe(path)
            self._watched.append(path)
        logger.debug(f"Registered watch: {path}")

    def emit(self, event: RawEvent) -> None:
        """Queue a raw event. Dropped once the notifier is closed."""
        try:
            self.messages.put(event)
        except ChannelClosedError:
            pass

    def report_error(self, error: BaseException) -> None:
        """Queue a transient error. Dropped once the notifier is closed."""
        try:
            self.messages.put(error)
        except ChannelClosedError:
            pass

    def close(self) -> None:
        """Stop delivering notifications and close the message channel."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._shutdown()
        finally:
            self.messages.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def watched_paths(self) -> List[str]:
        with self._lock:
            return list(self._watched)

    @abstractmethod
    def _subscribe(self, path: str) -> None:
        """Start watching path; raise RegistrationError if it cannot be watched."""

    def _shutdown(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FSEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to RawEvents on a Notifier."""

    def __init__(self, notifier: Notifier):
        super().__init__()
        self.notifier = notifier

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            self.notifier.report_error(e)

    def _emit(self, kind: EventKind, path) -> None:
        self.notifier.emit(RawEvent(kind=kind, path=os.fsdecode(path)))

    def on_created(self, event):
        self._emit(EventKind.CREATE, event.src_path)

    def on_deleted(self, event):
        self._emit(EventKind.REMOVE, event.src_path)

    def on_modified(self, event):
        # A watched directory reports its children; its own metadata
        # changes are not file changes.
        if isinstance(event, DirModifiedEvent):
            return
        self._emit(EventKind.WRITE, event.src_path)

    def on_moved(self, event):
        self._emit(EventKind.RENAME, event.src_path)
        self._emit(EventKind.CREATE, event.dest_path)


class WatchdogNotifier(Notifier):
    """
    Notifier backed by a single watchdog observer.

    Each added path gets its own non-recursive watch, so a file is watched
    as a file and a directory reports changes to its direct children.
    """

    def __init__(
        self,
        buffer_size: int = 0,
        observer: Optional[BaseObserver] = None,
        join_timeout: float = 5.0,
    ):
        """
        Initialize and start the observer.

        Args:
            buffer_size: Capacity of the message channel
            observer: Observer to use (defaults to the platform Observer)
            join_timeout: Seconds to wait for the observer thread on close

        Raises:
            NotifierError: If the observer cannot be started
        """
        super().__init__(buffer_size)
        self.join_timeout = join_timeout
        self._handler = FSEventHandler(self)
        self._observer = observer if observer is not None else Observer()
        self._watches: Dict[str, ObservedWatch] = {}
        try:
            self._observer.start()
        except (OSError, RuntimeError) as e:
            raise NotifierError(f"unable to create watcher: {e}") from e

    def _subscribe(self, path: str) -> None:
        if path in self._watches:
            return
        if not os.path.exists(path):
            raise RegistrationError(f"unable to watch '{path}': no such file or directory", path)
        try:
            self._watches[path] = self._observer.schedule(self._handler, path, recursive=False)
        except OSError as e:
            raise RegistrationError(f"unable to watch '{path}': {e}", path) from e

    def _shutdown(self) -> None:
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=self.join_timeout)
        self._watches.clear()
