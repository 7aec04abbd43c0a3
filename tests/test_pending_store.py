from __future__ import annotations

import asyncio
import json
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from services.payments.pending_store import (
    InMemoryPendingStore,
    JsonFilePendingStore,
    build_pending_store,
)


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def test_take_returns_intent_once() -> None:
    store = InMemoryPendingStore()

    async def scenario():
        await store.put("SES-1", plan="Plan Premium", amount=9990, user_id="u1")
        first = await store.take_and_expire("SES-1")
        second = await store.take_and_expire("SES-1")
        return first, second

    first, second = asyncio.run(scenario())
    assert first is not None
    assert (first.plan, first.amount, first.user_id) == ("Plan Premium", 9990, "u1")
    assert second is None


def test_interleaved_sessions_do_not_clobber_each_other() -> None:
    store = InMemoryPendingStore()

    async def scenario():
        await asyncio.gather(
            store.put("SES-A", plan="Plan Básico", amount=4990, user_id="alice"),
            store.put("SES-B", plan="Plan Premium", amount=9990, user_id="bob"),
        )
        return await store.take_and_expire("SES-B"), await store.take_and_expire("SES-A")

    bob, alice = asyncio.run(scenario())
    assert bob is not None and bob.user_id == "bob" and bob.plan == "Plan Premium"
    assert alice is not None and alice.user_id == "alice" and alice.plan == "Plan Básico"


def test_unknown_or_missing_session_returns_none() -> None:
    store = InMemoryPendingStore()
    assert asyncio.run(store.take_and_expire("SES-missing")) is None
    assert asyncio.run(store.take_and_expire(None)) is None


def test_expired_entries_are_pruned_on_access() -> None:
    clock = _Clock()
    store = InMemoryPendingStore(ttl=timedelta(hours=24), clock=clock)

    async def scenario():
        await store.put("SES-old", plan="Plan Premium", amount=9990, user_id="u1")
        clock.advance(hours=25)
        await store.put("SES-new", plan="Plan Básico", amount=4990, user_id="u2")
        taken = await store.take_and_expire("SES-new")
        remaining = await store.snapshot()
        return taken, remaining

    taken, remaining = asyncio.run(scenario())
    assert taken is not None and taken.session_id == "SES-new"
    assert remaining == {}


def test_expired_entry_for_requested_session_is_treated_as_absent() -> None:
    clock = _Clock()
    store = InMemoryPendingStore(ttl=timedelta(hours=1), clock=clock)

    async def scenario():
        await store.put("SES-1", plan="Plan Premium", amount=9990, user_id="u1")
        clock.advance(hours=2)
        return await store.take_and_expire("SES-1")

    assert asyncio.run(scenario()) is None


def test_sweep_removes_only_expired_entries() -> None:
    clock = _Clock()
    store = InMemoryPendingStore(ttl=timedelta(hours=1), clock=clock)

    async def scenario():
        await store.put("SES-old", plan="Plan Premium", amount=9990, user_id="u1")
        clock.advance(minutes=90)
        await store.put("SES-fresh", plan="Plan Premium", amount=9990, user_id="u2")
        removed = await store.sweep()
        return removed, await store.snapshot()

    removed, remaining = asyncio.run(scenario())
    assert removed == 1
    assert list(remaining) == ["SES-fresh"]


def test_file_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "payments" / "pending.json"
    writer = JsonFilePendingStore(path)
    asyncio.run(writer.put("SES-1", plan="Plan Premium", amount=9990, user_id="u1"))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["transactions"]["SES-1"]["user_id"] == "u1"

    reader = JsonFilePendingStore(path)
    intent = asyncio.run(reader.take_and_expire("SES-1"))
    assert intent is not None and intent.amount == 9990
    assert json.loads(path.read_text(encoding="utf-8")) == {"transactions": {}}


def test_file_store_tolerates_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "pending.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFilePendingStore(path)

    assert asyncio.run(store.take_and_expire("SES-1")) is None
    asyncio.run(store.put("SES-2", plan="Plan Básico", amount=4990, user_id="u2"))
    assert "SES-2" in json.loads(path.read_text(encoding="utf-8"))["transactions"]


def test_malformed_entry_is_discarded(tmp_path: Path) -> None:
    path = tmp_path / "pending.json"
    path.write_text(
        json.dumps({"transactions": {"SES-1": {"plan": "Plan Premium", "amount": "abc"}}}),
        encoding="utf-8",
    )
    store = JsonFilePendingStore(path)
    assert asyncio.run(store.take_and_expire("SES-1")) is None


def test_build_pending_store_selects_backend(tmp_path: Path) -> None:
    assert isinstance(build_pending_store("memory", path=tmp_path / "x.json"), InMemoryPendingStore)
    file_store = build_pending_store("file", path=tmp_path / "x.json")
    assert isinstance(file_store, JsonFilePendingStore)
    assert file_store.path == tmp_path / "x.json"
    assert isinstance(build_pending_store("redis", path=tmp_path / "x.json"), JsonFilePendingStore)


def test_file_store_reads_and_writes_off_the_event_loop(tmp_path: Path, monkeypatch) -> None:
    store = JsonFilePendingStore(tmp_path / "pending.json")
    io_threads = []
    original_load = store._state.load
    original_store = store._state.store

    def load():
        io_threads.append(threading.get_ident())
        return original_load()

    def write(entries):
        io_threads.append(threading.get_ident())
        original_store(entries)

    monkeypatch.setattr(store._state, "load", load)
    monkeypatch.setattr(store._state, "store", write)

    async def scenario():
        loop_thread = threading.get_ident()
        await asyncio.gather(
            store.put("SES-A", plan="Plan Básico", amount=4990, user_id="alice"),
            store.put("SES-B", plan="Plan Premium", amount=9990, user_id="bob"),
        )
        return loop_thread, await store.snapshot()

    loop_thread, snapshot = asyncio.run(scenario())
    assert sorted(snapshot) == ["SES-A", "SES-B"]
    assert io_threads and loop_thread not in io_threads
