"""Unit tests for grant publisher adapters."""

from unittest.mock import AsyncMock, Mock

import pytest
from kafka.errors import KafkaTimeoutError

from coupon_api.adapters.publisher.in_memory import InMemoryGrantPublisher
from coupon_api.adapters.publisher.kafka_publisher import KafkaGrantPublisher
from coupon_api.adapters.publisher.retrying import RetryingGrantPublisher, RetryPolicy
from coupon_api.core.errors import PublishError
from coupon_api.schemas.grant import GrantEvent


def make_event(requester_id=1, sequence=1) -> GrantEvent:
    return GrantEvent(requester_id=requester_id, sequence=sequence)


class TestGrantEvent:
    def test_event_is_immutable(self) -> None:
        event = make_event()

        with pytest.raises(Exception):
            event.sequence = 2  # type: ignore[misc]

    def test_message_is_json_compatible(self) -> None:
        message = make_event("user-1", 3).to_message()

        assert message["requester_id"] == "user-1"
        assert message["sequence"] == 3
        assert isinstance(message["issued_at"], str)

    def test_sequence_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            GrantEvent(requester_id=1, sequence=0)


class TestInMemoryGrantPublisher:
    @pytest.mark.asyncio
    async def test_drain_returns_events_in_order(self) -> None:
        publisher = InMemoryGrantPublisher(maxsize=10)
        for i in range(1, 4):
            await publisher.publish(make_event(i, i))

        events = publisher.drain()

        assert [e.requester_id for e in events] == [1, 2, 3]
        assert publisher.pending() == 0
        assert publisher.accepted == 3

    @pytest.mark.asyncio
    async def test_full_channel_raises_publish_error(self) -> None:
        publisher = InMemoryGrantPublisher(maxsize=1)
        await publisher.publish(make_event(1))

        with pytest.raises(PublishError):
            await publisher.publish(make_event(2))

        assert publisher.accepted == 1

    @pytest.mark.asyncio
    async def test_drain_respects_max_items(self) -> None:
        publisher = InMemoryGrantPublisher(maxsize=10)
        for i in range(1, 6):
            await publisher.publish(make_event(i, i))

        assert len(publisher.drain(max_items=2)) == 2
        assert publisher.pending() == 3

    def test_invalid_maxsize(self) -> None:
        with pytest.raises(ValueError):
            InMemoryGrantPublisher(maxsize=0)


class TestRetryingGrantPublisher:
    @pytest.mark.asyncio
    async def test_retries_until_accepted(self) -> None:
        inner = AsyncMock()
        inner.publish.side_effect = [PublishError("full"), PublishError("full"), None]
        sleep = AsyncMock()
        publisher = RetryingGrantPublisher(
            inner, RetryPolicy(max_attempts=3, base_delay=0.1, jitter=False), sleep=sleep
        )
        event = make_event()

        await publisher.publish(event)

        assert inner.publish.await_count == 3
        inner.publish.assert_awaited_with(event)
        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2])

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        inner = AsyncMock()
        inner.publish.side_effect = PublishError("down")
        publisher = RetryingGrantPublisher(
            inner, RetryPolicy(max_attempts=2, base_delay=0), sleep=AsyncMock()
        )

        with pytest.raises(PublishError):
            await publisher.publish(make_event())

        assert inner.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        inner = AsyncMock()
        inner.publish.side_effect = TypeError("not serializable")
        publisher = RetryingGrantPublisher(inner, RetryPolicy(max_attempts=5), sleep=AsyncMock())

        with pytest.raises(TypeError):
            await publisher.publish(make_event())

        assert inner.publish.await_count == 1

    @pytest.mark.asyncio
    async def test_start_and_close_delegate(self) -> None:
        inner = AsyncMock()
        publisher = RetryingGrantPublisher(inner)

        await publisher.start()
        await publisher.close()

        inner.start.assert_awaited_once()
        inner.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delay_is_capped(self) -> None:
        inner = AsyncMock()
        inner.publish.side_effect = PublishError("full")
        sleep = AsyncMock()
        publisher = RetryingGrantPublisher(
            inner,
            RetryPolicy(max_attempts=5, base_delay=0.1, max_delay=0.3, jitter=False),
            sleep=sleep,
        )

        with pytest.raises(PublishError):
            await publisher.publish(make_event())

        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2, 0.3, 0.3])

    @pytest.mark.asyncio
    async def test_jitter_stays_within_bounds(self) -> None:
        inner = AsyncMock()
        inner.publish.side_effect = PublishError("full")
        sleep = AsyncMock()
        publisher = RetryingGrantPublisher(
            inner,
            RetryPolicy(max_attempts=3, base_delay=0.2, max_delay=1.0, jitter=True),
            sleep=sleep,
        )

        with pytest.raises(PublishError):
            await publisher.publish(make_event())

        first, second = (c.args[0] for c in sleep.await_args_list)
        assert 0.2 <= first <= 0.4
        assert 0.4 <= second <= 0.6

    def test_invalid_policy(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestKafkaGrantPublisher:
    @pytest.mark.asyncio
    async def test_publish_sends_keyed_message_without_waiting(self) -> None:
        producer = Mock()
        future = Mock()
        producer.send.return_value = future
        publisher = KafkaGrantPublisher("localhost:9092", topic="coupon_create", producer=producer)
        event = make_event(99, 5)

        await publisher.publish(event)

        producer.send.assert_called_once_with(
            "coupon_create", value=event.to_message(), key="99"
        )
        future.add_errback.assert_called_once()
        future.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_buffer_timeout_is_publish_error(self) -> None:
        producer = Mock()
        producer.send.side_effect = KafkaTimeoutError("Failed to update metadata after 1.0 secs.")
        publisher = KafkaGrantPublisher("localhost:9092", producer=producer)

        with pytest.raises(PublishError):
            await publisher.publish(make_event())

    @pytest.mark.asyncio
    async def test_publish_before_start_fails(self) -> None:
        publisher = KafkaGrantPublisher("localhost:9092")

        with pytest.raises(PublishError):
            await publisher.publish(make_event())

    @pytest.mark.asyncio
    async def test_close_flushes_and_closes_once(self) -> None:
        producer = Mock()
        publisher = KafkaGrantPublisher("localhost:9092", producer=producer)

        await publisher.close()
        await publisher.close()

        producer.flush.assert_called_once()
        producer.close.assert_called_once()

    def test_delivery_error_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        publisher = KafkaGrantPublisher("localhost:9092", producer=Mock())

        with caplog.at_level("ERROR"):
            publisher._on_delivery_error(make_event(3, 1), KafkaTimeoutError("expired"))

        assert "publisher.kafka_delivery_failed" in caplog.text
