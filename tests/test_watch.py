"""Tests for watch set builder and watch sessions."""

import hashlib
import os
import queue
import time

import pytest

from smartwatch.config import WatcherConfig
from smartwatch.exceptions import PathResolutionError, RegistrationError
from smartwatch.fs_watcher import Notifier
from smartwatch.models import DigestStatus, EventKind, RawEvent
from smartwatch.queue import EventChannel
from smartwatch.watch import WatchSession, build_watch_set, watch


class RecordingNotifier(Notifier):
    """Notifier that records registrations and can refuse chosen paths."""

    def __init__(self, refuse=()):
        super().__init__()
        self.refuse = set(refuse)
        self.added = []

    def _subscribe(self, path):
        if path in self.refuse:
            raise RegistrationError(f"unable to watch '{path}'", path)
        self.added.append(path)


@pytest.fixture
def project(tmp_path):
    proj = tmp_path / "proj"
    proj.mkdir()
    (proj / "file.txt").write_text("hello")
    (proj / "other.txt").write_text("sibling")
    (proj / "secret").mkdir()
    (proj / "secret" / "data.bin").write_bytes(b"\x00\x01")
    return proj


def collect(channel, count, timeout=3.0):
    events = []
    deadline = time.monotonic() + timeout
    while len(events) < count and time.monotonic() < deadline:
        try:
            events.append(channel.get(timeout=0.1))
        except queue.Empty:
            continue
    return events


class TestBuildWatchSet:
    """Tests for build_watch_set function."""

    def test_paths_map_to_fingerprints(self, project):
        notifier = RecordingNotifier()
        file_path = str(project / "file.txt")

        watch_set = build_watch_set([file_path, str(project)], [], notifier)

        assert list(watch_set.paths) == [file_path, str(project)]
        assert watch_set.paths[file_path].fingerprint == hashlib.sha256(b"hello").digest()
        assert watch_set.paths[str(project)].status == DigestStatus.UNAVAILABLE
        assert watch_set.paths[str(project)].fingerprint is None

    def test_relative_paths_made_absolute(self, project, monkeypatch):
        monkeypatch.chdir(project)
        notifier = RecordingNotifier()

        watch_set = build_watch_set(["file.txt"], [], notifier)

        assert list(watch_set.paths) == [str(project / "file.txt")]
        assert notifier.added[0] == str(project / "file.txt")

    def test_duplicates_registered_once(self, project):
        notifier = RecordingNotifier()
        file_path = str(project / "file.txt")

        watch_set = build_watch_set([file_path, file_path, str(project / "x" / ".." / "file.txt")], [], notifier)

        assert list(watch_set.paths) == [file_path]
        assert notifier.added.count(file_path) == 1

    def test_ignored_input_never_registered(self, project):
        notifier = RecordingNotifier()
        secret = project / "secret"
        data = str(secret / "data.bin")

        watch_set = build_watch_set([data, str(project / "file.txt")], [str(secret)], notifier)

        assert data not in watch_set.paths
        assert data not in notifier.added
        assert str(secret) not in watch_set.rename_dirs
        assert all(data not in children for children in watch_set.rename_children.values())

    def test_parent_registered_for_rename_tracking(self, project):
        notifier = RecordingNotifier()
        file_path = str(project / "file.txt")

        watch_set = build_watch_set([file_path], [], notifier)

        assert notifier.added == [file_path, str(project)]
        assert watch_set.rename_dirs == {str(project)}
        assert watch_set.rename_children == {str(project): {file_path}}

    def test_shared_parent_registered_once(self, project):
        notifier = RecordingNotifier()
        a = str(project / "file.txt")
        b = str(project / "other.txt")

        watch_set = build_watch_set([a, b], [], notifier)

        assert notifier.added.count(str(project)) == 1
        assert watch_set.rename_children[str(project)] == {a, b}

    def test_watched_parent_not_a_rename_dir(self, project):
        notifier = RecordingNotifier()
        file_path = str(project / "file.txt")

        watch_set = build_watch_set([str(project), file_path], [], notifier)

        assert str(project) not in watch_set.rename_dirs
        assert str(project) not in watch_set.rename_children
        # The project directory's own parent still gets rename tracking.
        assert watch_set.rename_dirs == {str(project.parent)}
        assert watch_set.rename_children[str(project.parent)] == {str(project)}

    def test_hidden_inputs_recorded(self, project):
        env_file = project / ".env"
        env_file.write_text("KEY=value")
        notifier = RecordingNotifier()

        watch_set = build_watch_set([str(env_file), str(project / "file.txt")], [], notifier)

        assert watch_set.included_hidden_files == {str(env_file)}

    def test_digest_errors_are_recorded_not_raised(self, tmp_path):
        notifier = RecordingNotifier()
        missing = str(tmp_path / "missing.txt")

        watch_set = build_watch_set([missing], [], notifier)

        assert watch_set.paths[missing].status == DigestStatus.ERROR
        assert isinstance(watch_set.paths[missing].error, FileNotFoundError)

    def test_oversized_file_has_no_fingerprint(self, project):
        notifier = RecordingNotifier()
        config = WatcherConfig(max_hashed_file_size=2)

        watch_set = build_watch_set([str(project / "file.txt")], [], notifier, config)

        assert watch_set.paths[str(project / "file.txt")].reason == "too_large"

    def test_registration_failure_closes_notifier(self, project):
        file_path = str(project / "file.txt")
        notifier = RecordingNotifier(refuse=[file_path])

        with pytest.raises(RegistrationError):
            build_watch_set([file_path], [], notifier)

        assert notifier.closed is True

    def test_rename_dir_registration_failure_closes_notifier(self, project):
        notifier = RecordingNotifier(refuse=[str(project)])

        with pytest.raises(RegistrationError) as excinfo:
            build_watch_set([str(project / "file.txt")], [], notifier)

        assert excinfo.value.path == str(project)
        assert notifier.closed is True

    def test_unresolvable_path_closes_notifier(self, monkeypatch):
        def no_cwd(path):
            raise FileNotFoundError("cwd removed")

        monkeypatch.setattr(os.path, "abspath", no_cwd)
        notifier = RecordingNotifier()

        with pytest.raises(PathResolutionError):
            build_watch_set(["file.txt"], [], notifier)

        assert notifier.closed is True

    def test_smart_ignorer_uses_derived_state(self, project):
        notifier = RecordingNotifier()
        file_path = str(project / "file.txt")

        ignorer = build_watch_set([file_path], [], notifier).smart_ignorer()

        assert ignorer.is_ignored(file_path) is False
        assert ignorer.is_ignored(str(project / "other.txt")) is True


class TestWatch:
    """Tests for the watch function with an injected notifier."""

    def test_returns_running_session(self, project):
        notifier = RecordingNotifier()
        output = EventChannel()

        session = watch([str(project / "file.txt")], [], output, notifier=notifier)

        assert isinstance(session, WatchSession)
        assert session.is_running is True
        assert session.output is output
        assert list(session.paths) == [str(project / "file.txt")]

        session.close()
        assert session.is_running is False

    def test_rename_away_and_back_forwarded(self, project):
        notifier = RecordingNotifier()
        output = EventChannel()
        file_path = str(project / "file.txt")

        with watch([file_path], [], output, notifier=notifier):
            notifier.emit(RawEvent(EventKind.REMOVE, file_path))
            notifier.emit(RawEvent(EventKind.WRITE, str(project / "other.txt")))
            notifier.emit(RawEvent(EventKind.CREATE, file_path))

            events = collect(output, 2)

        assert [(e.kind, e.path) for e in events] == [
            (EventKind.REMOVE, file_path),
            (EventKind.CREATE, file_path),
        ]
        assert list(output) == []

    def test_ignored_descendants_suppressed(self, project):
        notifier = RecordingNotifier()
        output = EventChannel()

        with watch([str(project)], [str(project / "secret")], output, notifier=notifier):
            notifier.emit(RawEvent(EventKind.WRITE, str(project / "secret" / "data.bin")))
            notifier.emit(RawEvent(EventKind.WRITE, str(project / "file.txt")))

            events = collect(output, 1)

        assert [e.path for e in events] == [str(project / "file.txt")]

    def test_close_ends_output_in_bounded_time(self, project):
        notifier = RecordingNotifier()
        output = EventChannel()
        session = watch([str(project / "file.txt")], [], output, notifier=notifier)

        notifier.close()

        assert session.wait(timeout=2.0) is True
        assert output.closed is True
        notifier.emit(RawEvent(EventKind.WRITE, str(project / "file.txt")))
        assert list(output) == []

    def test_transient_errors_do_not_stop_watch(self, project):
        notifier = RecordingNotifier()
        output = EventChannel()
        file_path = str(project / "file.txt")

        with watch([file_path], [], output, notifier=notifier) as session:
            notifier.report_error(OSError("queue overflow"))
            notifier.emit(RawEvent(EventKind.WRITE, file_path))

            events = collect(output, 1)
            assert session.is_running is True

        assert [e.path for e in events] == [file_path]

    def test_construction_failure_raises_synchronously(self, project):
        notifier = RecordingNotifier(refuse=[str(project / "file.txt")])

        with pytest.raises(RegistrationError):
            watch([str(project / "file.txt")], [], EventChannel(), notifier=notifier)

        assert notifier.closed is True


class TestWatchEndToEnd:
    """Tests for watch against the real filesystem."""

    def test_write_to_watched_file(self, project):
        output = EventChannel()
        file_path = project / "file.txt"

        with watch([str(file_path)], [], output):
            time.sleep(0.2)
            file_path.write_text("changed")
            (project / "other.txt").write_text("noise")
            time.sleep(0.5)

        events = list(output)
        paths = {e.path for e in events}
        assert str(file_path) in paths
        assert str(project / "other.txt") not in paths

    def test_atomic_replace_keeps_file_watched(self, project):
        output = EventChannel()
        file_path = project / "file.txt"
        temp_path = project / ".file.txt.tmp"

        with watch([str(file_path)], [], output):
            time.sleep(0.2)
            temp_path.write_text("saved by editor")
            os.replace(temp_path, file_path)
            time.sleep(0.3)
            file_path.write_text("written again")
            time.sleep(0.5)

        events = list(output)
        assert all(e.path == str(file_path) for e in events)
        assert any(e.kind == EventKind.CREATE for e in events)
        assert events[-1].kind == EventKind.WRITE

    def test_missing_input_fails(self, tmp_path):
        with pytest.raises(RegistrationError):
            watch([str(tmp_path / "missing.txt")], [], EventChannel())
