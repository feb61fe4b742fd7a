"""Data models for the smartwatch package."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EventKind(Enum):
    """Kinds of raw filesystem notifications."""
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


class DigestStatus(Enum):
    """Outcome of fingerprinting a path."""
    OK = "ok"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class RawEvent:
    """
    A notification as delivered by the notification subsystem.

    Attributes:
        kind: What happened to the path
        path: Absolute path the notification is about
    """
    kind: EventKind
    path: str

    def __str__(self) -> str:
        return f"{self.kind.value.upper()} {self.path!r}"


@dataclass(frozen=True)
class Event:
    """
    A raw event that passed the ignore policy, stamped at dispatch time.

    Attributes:
        timestamp: Unix timestamp when the event was forwarded
        raw: The underlying raw event
    """
    timestamp: float
    raw: RawEvent

    @property
    def path(self) -> str:
        return self.raw.path

    @property
    def kind(self) -> EventKind:
        return self.raw.kind

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp,
            "kind": self.raw.kind.value,
            "path": self.raw.path,
        }


@dataclass(frozen=True)
class DigestResult:
    """
    Content fingerprint of a path, or why there is none.

    Attributes:
        status: OK, UNAVAILABLE (directory or too large) or ERROR
        fingerprint: Hash bytes, only set when status is OK
        reason: For UNAVAILABLE, "directory" or "too_large"
        error: For ERROR, the exception raised while reading
    """
    status: DigestStatus
    fingerprint: Optional[bytes] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    def __post_init__(self):
        if self.status == DigestStatus.OK and self.fingerprint is None:
            raise ValueError("OK digest requires a fingerprint")
        if self.status != DigestStatus.OK and self.fingerprint is not None:
            raise ValueError(f"{self.status.value} digest cannot carry a fingerprint")

    @property
    def ok(self) -> bool:
        return self.status == DigestStatus.OK

    @classmethod
    def of(cls, fingerprint: bytes) -> "DigestResult":
        return cls(DigestStatus.OK, fingerprint=fingerprint)

    @classmethod
    def unavailable(cls, reason: str) -> "DigestResult":
        return cls(DigestStatus.UNAVAILABLE, reason=reason)

    @classmethod
    def failed(cls, error: BaseException) -> "DigestResult":
        return cls(DigestStatus.ERROR, error=error)
