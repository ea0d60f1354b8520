"""Tests for the trades record store (sqlite via aiosqlite)."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.services.trade_store import TradeStore, TradeStoreError


def fields(trade_date: date, **overrides) -> dict:
    base = {
        "trade_date": trade_date,
        "ticker": "7203",
        "ticker_name": "Toyota",
        "realized_profit": 1500.0,
        "reason": "breakout",
        "reflection": None,
        "image_path": None,
    }
    base.update(overrides)
    return base


class TestTradeStore:
    async def test_insert_and_list_newest_first(self, db):
        store = TradeStore(db)
        await store.insert("user-1", fields(date(2024, 5, 1)))
        await store.insert("user-1", fields(date(2024, 5, 3), ticker="6871"))
        await store.insert("user-2", fields(date(2024, 5, 2)))

        records = await store.list_for_user("user-1")
        assert [r.trade_date for r in records] == [date(2024, 5, 3), date(2024, 5, 1)]
        assert all(r.user_id == "user-1" for r in records)
        assert len({r.id for r in records}) == 2

    async def test_insert_ignores_unknown_columns(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1), user_id="user-9", id="forced"))
        assert record.user_id == "user-1"
        assert record.id != "forced"

    async def test_absent_profit_stays_absent(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1), realized_profit=None))
        assert (await store.get("user-1", record.id)).realized_profit is None

    async def test_update_only_given_columns(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1)))

        updated = await store.update("user-1", record.id, {"reflection": "sold too early", "ticker": "XXXX"})
        assert updated.reflection == "sold too early"
        assert updated.reason == "breakout"
        assert updated.ticker == "7203"
        assert updated.realized_profit == 1500.0

    async def test_update_clears_profit(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1)))
        updated = await store.update("user-1", record.id, {"realized_profit": None})
        assert updated.realized_profit is None

    async def test_other_users_rows_are_invisible(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1)))

        assert await store.get("user-2", record.id) is None
        assert await store.update("user-2", record.id, {"reason": "hijack"}) is None
        assert await store.delete("user-2", record.id) is False
        assert (await store.get("user-1", record.id)).reason == "breakout"

    async def test_delete(self, db):
        store = TradeStore(db)
        record = await store.insert("user-1", fields(date(2024, 5, 1)))
        assert await store.delete("user-1", record.id) is True
        assert await store.list_for_user("user-1") == []
        assert await store.delete("user-1", record.id) is False

    async def test_database_errors_become_store_errors(self, db, monkeypatch):
        store = TradeStore(db)

        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db, "execute", broken_execute)
        with pytest.raises(TradeStoreError):
            await store.list_for_user("user-1")
