"""Custom exceptions for the smartwatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class PathResolutionError(WatcherError):
    """A path could not be made absolute (no usable working directory)."""
    pass


class NotifierError(WatcherError):
    """The filesystem notification subsystem could not be created or used."""
    pass


class RegistrationError(NotifierError):
    """A path could not be registered with the notification subsystem."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class NotifierClosedError(NotifierError):
    """The notifier has already been closed."""
    pass


class ChannelError(WatcherError):
    """Error related to an event channel."""
    pass


class ChannelClosedError(ChannelError):
    """The channel is closed (and, for readers, drained)."""
    pass
