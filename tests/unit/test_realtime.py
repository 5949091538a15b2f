"""Unit tests for the event bus, topics, payloads and the Redis sink."""
import asyncio
import json
import threading
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from src.iv_realtime.api.router import bounded_enqueue
from src.iv_realtime.bus import EventBus
from src.iv_realtime.events import PriceTickEvent, Topic, TradeEvent
from src.iv_realtime.redis_bridge import channel_for, redis_sink

TS = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _tick(price: str = "101.5") -> PriceTickEvent:
    return PriceTickEvent("ins-1", "sc-1", Decimal(price), TS)


class TestTopics:
    def test_names(self) -> None:
        assert Topic.instrument_prices("ins-1").name == "prices:instrument:ins-1"
        assert Topic.user_trades("sc-1", "u-1").name == "trades:scenario:sc-1:user:u-1"

    def test_topics_are_value_objects(self) -> None:
        assert Topic.scenario_prices("sc-1") == Topic.scenario_prices("sc-1")
        assert hash(Topic.scenario_trades("sc-1")) == hash(Topic("trades:scenario:sc-1"))


class TestPayloads:
    def test_price_tick_payload_is_json_ready(self) -> None:
        payload = _tick().to_payload()
        assert payload["type"] == "price_tick"
        assert payload["price"] == "101.5"
        assert json.loads(json.dumps(payload))["timestamp"] == TS.isoformat()

    def test_trade_payload(self) -> None:
        event = TradeEvent("sc-1", "u-1", "o-1", "t-1", "ins-1", "BUY", Decimal("2"), Decimal("10"), TS)
        payload = event.to_payload()
        assert payload["type"] == "trade"
        assert payload["qty"] == "2"


class TestEventBus:
    async def test_delivers_to_topic_subscribers_only(self) -> None:
        bus = EventBus()
        got: list = []
        other: list = []
        bus.subscribe(Topic.scenario_prices("sc-1"), got.append)
        bus.subscribe(Topic.scenario_prices("sc-2"), other.append)

        delivered = await bus.publish(Topic.scenario_prices("sc-1"), _tick())

        assert delivered == 1
        assert len(got) == 1
        assert other == []

    async def test_cancel_stops_delivery(self) -> None:
        bus = EventBus()
        got: list = []
        sub = bus.subscribe(Topic.scenario_prices("sc-1"), got.append)
        sub.cancel()
        sub.cancel()

        assert await bus.publish(Topic.scenario_prices("sc-1"), _tick()) == 0
        assert got == []
        assert bus.subscriber_count() == 0

    async def test_context_manager_cancels(self) -> None:
        bus = EventBus()
        topic = Topic.scenario_prices("sc-1")
        with bus.subscribe(topic, lambda e: None):
            assert bus.subscriber_count(topic) == 1
        assert bus.subscriber_count(topic) == 0

    async def test_cancel_during_delivery_skips_later_subscriber(self) -> None:
        bus = EventBus()
        topic = Topic.scenario_prices("sc-1")
        got: list = []
        second = None

        def first(event) -> None:
            second.cancel()

        bus.subscribe(topic, first)
        second = bus.subscribe(topic, got.append)

        await bus.publish(topic, _tick())
        assert got == []

    async def test_cancel_from_other_thread(self) -> None:
        bus = EventBus()
        topic = Topic.scenario_prices("sc-1")
        got: list = []
        sub = bus.subscribe(topic, got.append)

        t = threading.Thread(target=sub.cancel)
        t.start()
        t.join()

        await bus.publish(topic, _tick())
        assert got == []
        assert sub.active is False

    async def test_failing_subscriber_does_not_break_others(self) -> None:
        bus = EventBus()
        topic = Topic.scenario_prices("sc-1")
        got: list = []

        def boom(event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(topic, boom)
        bus.subscribe(topic, got.append)
        assert await bus.publish(topic, _tick()) == 1
        assert len(got) == 1

    async def test_sinks_see_every_event(self) -> None:
        bus = EventBus()
        sink = AsyncMock()
        bus.add_sink(sink)
        topic = Topic.scenario_trades("sc-1")
        event = _tick()

        await bus.publish(topic, event)
        sink.assert_awaited_once_with(topic, event)

        bus.remove_sink(sink)
        await bus.publish(topic, event)
        assert sink.await_count == 1

    async def test_failing_sink_is_swallowed(self) -> None:
        bus = EventBus()
        bus.add_sink(AsyncMock(side_effect=ConnectionError("redis down")))
        assert await bus.publish(Topic.scenario_prices("sc-1"), _tick()) == 0


class TestBoundedEnqueue:
    def test_drops_oldest_when_full(self) -> None:
        queue: asyncio.Queue = asyncio.Queue(maxsize=2)
        enqueue = bounded_enqueue(queue)
        for price in ("1", "2", "3"):
            enqueue(_tick(price))

        assert queue.qsize() == 2
        assert queue.get_nowait().price == Decimal("2")
        assert queue.get_nowait().price == Decimal("3")


class TestRedisSink:
    def test_channel_prefix(self) -> None:
        assert channel_for(Topic.scenario_prices("sc-1")) == "iv:prices:scenario:sc-1"

    async def test_publishes_json_payload(self) -> None:
        redis = MagicMock()
        redis.publish = AsyncMock(return_value=1)
        with patch("src.iv_realtime.redis_bridge.get_redis", AsyncMock(return_value=redis)):
            await redis_sink(Topic.scenario_prices("sc-1"), _tick())

        channel, body = redis.publish.await_args.args
        assert channel == "iv:prices:scenario:sc-1"
        assert json.loads(body)["price"] == "101.5"
