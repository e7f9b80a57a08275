"""
Tests for the snapshot publish/subscribe channel.
"""

import pytest

from services.issue_feed import IssueFeed


@pytest.mark.unit
class TestIssueFeed:
    """Subscription lifecycle and delivery."""

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self, make_issue) -> None:
        feed = IssueFeed("test")
        first, second = [], []
        feed.subscribe(first.append)
        feed.subscribe(second.append)

        snapshot = [make_issue(minutes=1)]
        await feed.publish(snapshot)

        assert first == [snapshot]
        assert second == [snapshot]
        assert feed.last_snapshot == snapshot

    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self, make_issue) -> None:
        feed = IssueFeed("test")
        received = []

        async def on_snapshot(snapshot):
            received.append(len(snapshot))

        feed.subscribe(on_snapshot)
        await feed.publish([make_issue(), make_issue(minutes=1)])

        assert received == [2]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery_and_is_idempotent(self, make_issue) -> None:
        feed = IssueFeed("test")
        received = []
        subscription = feed.subscribe(received.append)

        subscription.unsubscribe()
        subscription.unsubscribe()
        await feed.publish([make_issue()])

        assert received == []
        assert feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self) -> None:
        feed = IssueFeed("test")

        with pytest.raises(RuntimeError):
            with feed.subscribe(lambda snapshot: None):
                assert feed.subscriber_count == 1
                raise RuntimeError("view crashed")

        assert feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self, make_issue) -> None:
        feed = IssueFeed("test")
        received = []

        def broken(snapshot):
            raise ValueError("boom")

        feed.subscribe(broken)
        feed.subscribe(received.append)
        await feed.publish([make_issue()])

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_subscriber_gets_a_copy(self, make_issue) -> None:
        feed = IssueFeed("test")
        received = []
        feed.subscribe(received.append)

        snapshot = [make_issue()]
        await feed.publish(snapshot)
        received[0].clear()

        assert len(snapshot) == 1

    def test_close_drops_subscribers(self) -> None:
        feed = IssueFeed("test")
        subscription = feed.subscribe(lambda snapshot: None)

        feed.close()

        assert feed.subscriber_count == 0
        assert subscription.active is False
