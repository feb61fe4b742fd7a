"""Configuration for the smartwatch package."""

import hashlib
import os
from dataclasses import dataclass
from typing import Mapping, Optional


MAX_HASHED_FILE_SIZE = 20 * 1024 * 1024

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class WatcherConfig:
    """
    Configuration options for a watch.

    Attributes:
        verbose: Log every forwarded (and, at DEBUG, every ignored) event
        max_hashed_file_size: Files larger than this get no fingerprint
        hash_algorithm: Algorithm for content fingerprints
        skip_unchanged_writes: Re-digest watched files on write events and
            drop the event when the content did not change
        event_buffer_size: Capacity of the raw notification channel (0 = unbounded)
        output_buffer_size: Capacity of the output channel created by the CLI
            (0 = unbounded)
        join_timeout: Seconds to wait for observer/dispatcher threads on close
    """
    verbose: bool = False
    max_hashed_file_size: int = MAX_HASHED_FILE_SIZE
    hash_algorithm: str = "sha256"
    skip_unchanged_writes: bool = False
    event_buffer_size: int = 4096
    output_buffer_size: int = 0
    join_timeout: float = 5.0

    def __post_init__(self):
        if self.max_hashed_file_size < 0:
            raise ValueError(f"max_hashed_file_size must be >= 0: {self.max_hashed_file_size}")
        if self.event_buffer_size < 0:
            raise ValueError(f"event_buffer_size must be >= 0: {self.event_buffer_size}")
        if self.output_buffer_size < 0:
            raise ValueError(f"output_buffer_size must be >= 0: {self.output_buffer_size}")
        if self.join_timeout <= 0:
            raise ValueError(f"join_timeout must be positive: {self.join_timeout}")
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"unknown hash_algorithm: {self.hash_algorithm}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatcherConfig":
        """
        Build a config from SMARTWATCH_* environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            A new WatcherConfig
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        if "SMARTWATCH_VERBOSE" in env:
            kwargs["verbose"] = _env_bool(env["SMARTWATCH_VERBOSE"])
        if "SMARTWATCH_MAX_HASHED_FILE_SIZE" in env:
            kwargs["max_hashed_file_size"] = int(env["SMARTWATCH_MAX_HASHED_FILE_SIZE"])
        if "SMARTWATCH_HASH_ALGORITHM" in env:
            kwargs["hash_algorithm"] = env["SMARTWATCH_HASH_ALGORITHM"].strip()
        if "SMARTWATCH_SKIP_UNCHANGED" in env:
            kwargs["skip_unchanged_writes"] = _env_bool(env["SMARTWATCH_SKIP_UNCHANGED"])
        if "SMARTWATCH_EVENT_BUFFER_SIZE" in env:
            kwargs["event_buffer_size"] = int(env["SMARTWATCH_EVENT_BUFFER_SIZE"])
        if "SMARTWATCH_OUTPUT_BUFFER_SIZE" in env:
            kwargs["output_buffer_size"] = int(env["SMARTWATCH_OUTPUT_BUFFER_SIZE"])
        if "SMARTWATCH_JOIN_TIMEOUT" in env:
            kwargs["join_timeout"] = float(env["SMARTWATCH_JOIN_TIMEOUT"])

        return cls(**kwargs)
