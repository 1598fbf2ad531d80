"""
Interaction Logger and Log Store Tests
"""

import asyncio
from datetime import timedelta

import pytest

from tutor_engine.models.interaction_logs import InteractionLogEntry, InteractionLogStore
from tutor_engine.models.session import utc_now
from tutor_engine.services.interaction_logger import InteractionLogger


def _entry(user_id=1, event_type="message_sent", **fields):
    return InteractionLogEntry(user_id=user_id, event_type=event_type, **fields)


# =============================================================================
# Logger
# =============================================================================


@pytest.mark.asyncio
async def test_entries_delivered_after_flush(interaction_logger, log_store):
    interaction_logger.log(_entry())
    interaction_logger.log(_entry(event_type="message_received"))

    await interaction_logger.flush()

    assert {log.event_type for log in log_store.get_logs()} == {"message_sent", "message_received"}


@pytest.mark.asyncio
async def test_log_does_not_wait_for_delivery(interaction_logger, log_store):
    interaction_logger.log(_entry())

    assert log_store.get_logs() == []
    await interaction_logger.flush()
    assert len(log_store.get_logs()) == 1


def test_log_outside_event_loop_writes_immediately(interaction_logger, log_store):
    interaction_logger.log(_entry())
    assert len(log_store.get_logs()) == 1


@pytest.mark.asyncio
async def test_full_queue_drops_entries(log_store):
    interaction_logger = InteractionLogger(log_store, queue_size=1)

    interaction_logger.log(_entry())
    interaction_logger.log(_entry())
    await interaction_logger.flush()

    assert len(log_store.get_logs()) == 1


class _FailingStore(InteractionLogStore):
    def add_log(self, entry):
        raise RuntimeError("disk full")


@pytest.mark.asyncio
async def test_sink_failure_is_contained():
    interaction_logger = InteractionLogger(_FailingStore())

    interaction_logger.log(_entry())
    await interaction_logger.flush()
    interaction_logger.log(_entry())
    await interaction_logger.flush()


@pytest.mark.asyncio
async def test_close_drains_and_stops(interaction_logger, log_store):
    interaction_logger.log(_entry())

    await interaction_logger.close()
    await asyncio.sleep(0)

    assert len(log_store.get_logs()) == 1
    interaction_logger.log(_entry())
    await interaction_logger.flush()
    assert len(log_store.get_logs()) == 2


# =============================================================================
# Store
# =============================================================================


def test_store_filters_and_orders_newest_first():
    store = InteractionLogStore()
    now = utc_now()
    store.add_log(_entry(session_id=1, timestamp=now - timedelta(minutes=2)))
    store.add_log(_entry(session_id=1, event_type="error", timestamp=now - timedelta(minutes=1)))
    store.add_log(_entry(user_id=2, session_id=2, timestamp=now))

    assert [log.user_id for log in store.get_logs()] == [2, 1, 1]
    assert [log.event_type for log in store.get_logs(user_id=1)] == ["error", "message_sent"]
    assert len(store.get_logs(session_id=2)) == 1
    assert len(store.get_logs(event_type="error")) == 1
    assert len(store.get_logs(start_date=now - timedelta(seconds=90))) == 2
    assert len(store.get_logs(end_date=now - timedelta(seconds=90))) == 1
    assert len(store.get_logs(limit=1)) == 1


def test_store_caps_entries_per_user():
    store = InteractionLogStore(max_logs_per_user=3)
    for i in range(5):
        store.add_log(_entry(message_id=i))
    store.add_log(_entry(user_id=2))

    assert sorted(log.message_id for log in store.get_logs(user_id=1)) == [2, 3, 4]
    assert len(store.get_logs(user_id=2)) == 1


def test_store_stats():
    store = InteractionLogStore()
    store.add_log(_entry(event_type="message_received", mode="manual", agent_name="a", response_time_ms=100))
    store.add_log(_entry(event_type="message_received", mode="router", agent_name="a", response_time_ms=300))
    store.add_log(_entry(event_type="message_sent", mode="router", agent_name="a"))

    stats = store.get_stats()

    assert sorted(stats["messages_by_mode"], key=lambda s: s["mode"]) == [
        {"mode": "manual", "count": 1},
        {"mode": "router", "count": 1},
    ]
    assert stats["messages_by_agent"] == [{"agent": "a", "count": 2}]
    assert stats["avg_response_time_ms"] == 200


def test_store_clear():
    store = InteractionLogStore()
    store.add_log(_entry())
    store.clear()
    assert store.get_logs() == []
