from __future__ import annotations

import threading

import pytest

from httpagent._collections import ErrorQueue, HTTPHeaderDict


class TestErrorQueue:
    def test_append_and_snapshot(self) -> None:
        q = ErrorQueue()
        assert not q
        first, second = ValueError("a"), KeyError("b")
        q.append(first)
        q.append(second)

        assert len(q) == 2
        assert q.snapshot() == (first, second)
        assert list(q) == [first, second]

    def test_snapshot_is_not_affected_by_later_appends(self) -> None:
        q = ErrorQueue()
        q.append(ValueError("a"))
        snap = q.snapshot()
        q.append(ValueError("b"))
        assert len(snap) == 1
        assert len(q) == 2

    def test_maxsize_keeps_most_recent(self) -> None:
        q = ErrorQueue(maxsize=2)
        errors = [ValueError(str(i)) for i in range(3)]
        for e in errors:
            q.append(e)
        assert q.snapshot() == (errors[1], errors[2])

    def test_concurrent_appends(self) -> None:
        q = ErrorQueue()

        def append_many() -> None:
            for i in range(200):
                q.append(RuntimeError(i))

        threads = [threading.Thread(target=append_many) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(q) == 1000


class TestHTTPHeaderDict:
    def test_keeps_order_and_duplicates(self) -> None:
        h = HTTPHeaderDict([("X-A", "1"), ("x-a", "2"), ("X-B", "3")])
        assert list(h.iteritems()) == [("X-A", "1"), ("X-A", "2"), ("X-B", "3")]
        assert h["x-a"] == "1, 2"
        assert h.getlist("X-A") == ["1", "2"]
        assert h.getlist("missing") == []

    def test_from_mapping(self) -> None:
        h = HTTPHeaderDict({"Accept": "text/plain", "X-Token": "t"})
        assert "accept" in h
        assert h["ACCEPT"] == "text/plain"
        assert list(h) == ["Accept", "X-Token"]

    def test_setitem_overwrites(self) -> None:
        h = HTTPHeaderDict(foo="bar")
        h.add("Foo", "baz")
        h["FOO"] = "qux"
        assert h.getlist("foo") == ["qux"]

    def test_discard_and_copy(self) -> None:
        h = HTTPHeaderDict([("Cookie", "a=1"), ("Accept", "*/*")])
        clone = h.copy()
        clone.discard("cookie")
        clone.discard("not-there")
        assert "cookie" in h
        assert "cookie" not in clone

    def test_equality_is_case_insensitive(self) -> None:
        assert HTTPHeaderDict({"Content-Type": "text/plain"}) == {
            "content-type": "text/plain"
        }
        assert HTTPHeaderDict({"a": "1"}) != HTTPHeaderDict({"a": "2"})
        assert HTTPHeaderDict() != 1

    def test_extend_rejects_many_args(self) -> None:
        with pytest.raises(TypeError):
            HTTPHeaderDict().extend({}, {})
