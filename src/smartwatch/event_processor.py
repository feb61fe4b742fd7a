"""Event dispatch: filters raw notifications and forwards timestamped events."""

import logging
import threading
import time
from typing import Dict, Optional

from .config import WatcherConfig
from .digest import digest
from .exceptions import ChannelClosedError
from .ignore import Ignorer
from .models import DigestResult, Event, EventKind, RawEvent
from .queue import EventChannel

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Drains a notifier's message channel into an output channel.

    Raw events that the ignorer flags are dropped; the rest are wrapped in
    an Event stamped with the forwarding time. Errors are logged and do not
    stop the loop. The loop ends when the source channel is closed or
    yields None, and the output channel is closed on the way out.

    Ignore state is only read here, on the dispatcher's own thread.
    """

    def __init__(
        self,
        source: EventChannel,
        output: EventChannel,
        ignorer: Ignorer,
        config: Optional[WatcherConfig] = None,
        fingerprints: Optional[Dict[str, DigestResult]] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            source: Merged raw event / error channel of a notifier
            output: Channel receiving forwarded Events
            ignorer: Policy deciding which raw events to drop
            config: Watcher configuration
            fingerprints: Initial digests of watched paths, consulted only
                when config.skip_unchanged_writes is set
        """
        self.source = source
        self.output = output
        self.ignorer = ignorer
        self.config = config or WatcherConfig()
        self._fingerprints: Dict[str, DigestResult] = dict(fingerprints or {})
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.forwarded_count = 0
        self.ignored_count = 0

    def start(self) -> threading.Thread:
        """
        Run the dispatch loop on a background daemon thread.

        Returns:
            The started thread
        """
        self._thread = threading.Thread(target=self.run, name="EventDispatcher", daemon=True)
        self._running = True
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop to finish.

        Returns:
            True if the loop has stopped
        """
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            return not self._thread.is_alive()
        return not self._running

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self) -> None:
        """Dispatch until the source closes. Blocks the calling thread."""
        self._running = True
        try:
            while True:
                try:
                    item = self.source.get()
                except ChannelClosedError:
                    break

                # The owner closed the subscription.
                if item is None:
                    break

                if isinstance(item, BaseException):
                    logger.error(f"watch error: {item}")
                    continue

                if not self._dispatch(item):
                    break
        finally:
            self.output.close()
            self._running = False
            logger.debug(
                f"Dispatch loop stopped: {self.forwarded_count} forwarded, "
                f"{self.ignored_count} ignored"
            )

    def _dispatch(self, raw: RawEvent) -> bool:
        """Forward one raw event. Returns False if the consumer is gone."""
        if self.ignorer.is_ignored(raw.path) or self._unchanged(raw):
            self.ignored_count += 1
            if self.config.verbose:
                logger.debug(f"ignored file change: {raw}")
            return True

        if self.config.verbose:
            logger.info(f"unignored file change: {raw}")

        try:
            self.output.put(Event(timestamp=time.time(), raw=raw))
        except ChannelClosedError:
            logger.warning("output channel closed by consumer, stopping dispatch")
            return False

        self.forwarded_count += 1
        return True

    def _unchanged(self, raw: RawEvent) -> bool:
        """
        Refresh the fingerprint of a watched path and report a no-op write.

        Every forwarded kind on a fingerprinted path re-digests it, so an
        atomic replace (create) or a removal never leaves a stale entry
        behind. Only a write whose content matches the stored fingerprint
        counts as unchanged.
        """
        if not self.config.skip_unchanged_writes or raw.path not in self._fingerprints:
            return False

        previous = self._fingerprints[raw.path]
        current = digest(raw.path, self.config.max_hashed_file_size, self.config.hash_algorithm)
        self._fingerprints[raw.path] = current
        if raw.kind != EventKind.WRITE:
            return False
        return previous.ok and current.ok and previous.fingerprint == current.fingerprint
