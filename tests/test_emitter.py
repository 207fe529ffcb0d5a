"""Tests for the listener registry."""

import logging

import pytest

from src.dirwatch.emitter import EventEmitter
from src.dirwatch.exceptions import UnknownEventError, WatcherError
from src.dirwatch.models import EventType


class TestEventEmitter:
    """Tests for EventEmitter class."""

    def test_on_and_emit(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("add", lambda *args: calls.append(args))

        result = emitter.emit(EventType.ADD, "path", "stat")

        assert result is True
        assert calls == [("path", "stat")]

    def test_enum_and_string_kinds_are_equivalent(self):
        emitter = EventEmitter()
        calls = []
        emitter.on(EventType.CHANGE, lambda *args: calls.append("enum"))
        emitter.on("change", lambda *args: calls.append("str"))

        emitter.emit(EventType.CHANGE, "p", "new", "old")

        assert calls == ["enum", "str"]
        assert emitter.listener_count("change") == 2

    def test_emit_without_listeners(self):
        emitter = EventEmitter()
        assert emitter.emit(EventType.REMOVE, "p", "stat") is False

    def test_unknown_kind(self):
        emitter = EventEmitter()
        with pytest.raises(UnknownEventError):
            emitter.on("renamed", lambda *args: None)

    def test_unknown_kind_is_value_error(self):
        emitter = EventEmitter()
        with pytest.raises(ValueError):
            emitter.on("renamed", lambda *args: None)

    def test_off(self):
        emitter = EventEmitter()
        calls = []
        listener = emitter.on("create", lambda *args: calls.append(args))

        assert emitter.off("create", listener) is True
        assert emitter.off("create", listener) is False
        emitter.emit(EventType.CREATE, "p", "s")

        assert calls == []

    def test_once(self):
        emitter = EventEmitter()
        calls = []
        emitter.once("create", lambda *args: calls.append(args))

        emitter.emit(EventType.CREATE, "a", "s")
        emitter.emit(EventType.CREATE, "b", "s")

        assert calls == [("a", "s")]
        assert emitter.listener_count("create") == 0

    def test_remove_all_listeners(self):
        emitter = EventEmitter()
        emitter.on("add", lambda *args: None)
        emitter.on("remove", lambda *args: None)

        emitter.remove_all_listeners()

        assert emitter.listener_count("add") == 0
        assert emitter.listener_count("remove") == 0

    def test_listener_exception_logged(self, caplog):
        emitter = EventEmitter()
        calls = []

        def broken(*args):
            raise RuntimeError("boom")

        emitter.on("add", broken)
        emitter.on("add", lambda *args: calls.append(args))

        with caplog.at_level(logging.ERROR):
            emitter.emit(EventType.ADD, "p", "s")

        assert calls == [("p", "s")]
        assert "Listener for 'add' failed" in caplog.text

    def test_unhandled_error_logged(self, caplog):
        emitter = EventEmitter()

        with caplog.at_level(logging.ERROR):
            result = emitter.emit(EventType.ERROR, WatcherError("disk gone"))

        assert result is False
        assert "Unhandled watcher error: disk gone" in caplog.text

    def test_handled_error_not_logged(self, caplog):
        emitter = EventEmitter()
        errors = []
        emitter.on("error", errors.append)

        with caplog.at_level(logging.ERROR):
            emitter.emit(EventType.ERROR, WatcherError("disk gone"))

        assert len(errors) == 1
        assert "Unhandled" not in caplog.text
