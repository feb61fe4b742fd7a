"""
smartwatch

Watches a set of filesystem paths and streams filtered change events to a
consumer over a channel.

Features:
- Exclusion of user-ignored paths and everything below them
- Rename-aware filtering for editors that save via atomic replace
- Hidden-file noise suppression
- Capped content fingerprints, optionally used to drop no-op writes
- Single dispatch thread with blocking backpressure
"""

from .models import (
    EventKind,
    DigestStatus,
    RawEvent,
    Event,
    DigestResult,
)

from .config import WatcherConfig, MAX_HASHED_FILE_SIZE

from .exceptions import (
    WatcherError,
    PathResolutionError,
    NotifierError,
    RegistrationError,
    NotifierClosedError,
    ChannelError,
    ChannelClosedError,
)

from .digest import digest, digest_or_raise
from .queue import EventChannel
from .ignore import Ignorer, UserIgnorer, SmartIgnorer, create_user_ignorer
from .fs_watcher import Notifier, WatchdogNotifier, FSEventHandler
from .event_processor import EventDispatcher
from .watch import WatchSet, WatchSession, build_watch_set, watch


__all__ = [
    # Models
    "EventKind",
    "DigestStatus",
    "RawEvent",
    "Event",
    "DigestResult",
    # Config
    "WatcherConfig",
    "MAX_HASHED_FILE_SIZE",
    # Exceptions
    "WatcherError",
    "PathResolutionError",
    "NotifierError",
    "RegistrationError",
    "NotifierClosedError",
    "ChannelError",
    "ChannelClosedError",
    # Components
    "digest",
    "digest_or_raise",
    "EventChannel",
    "Ignorer",
    "UserIgnorer",
    "SmartIgnorer",
    "create_user_ignorer",
    "Notifier",
    "WatchdogNotifier",
    "FSEventHandler",
    "EventDispatcher",
    # Watch
    "WatchSet",
    "WatchSession",
    "build_watch_set",
    "watch",
]

__version__ = "0.1.0"
