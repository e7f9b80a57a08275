"""
Snapshot publish/subscribe channel for the live issue view.

Every delivery carries the complete current issue list in backend order, so a
subscriber replaces whatever it held before. Subscribers must release their
handle when the consuming view goes away; `Subscription` is a context manager
for that purpose.
"""

import inspect
from typing import Awaitable, Callable, Union

import structlog

from models.cosmos_documents import IssueDocument

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[list[IssueDocument]], Union[Awaitable[None], None]]


class Subscription:
    """Handle returned by `IssueFeed.subscribe`."""

    def __init__(self, feed: "IssueFeed", callback: SnapshotCallback):
        self._feed = feed
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving snapshots. Safe to call more than once."""
        if self.active:
            self.active = False
            self._feed._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class IssueFeed:
    """Fan-out of full issue snapshots to registered callbacks."""

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: list[Subscription] = []
        self.last_snapshot: list[IssueDocument] | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        logger.debug("feed_subscribed", feed=self.name, subscribers=self.subscriber_count)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug("feed_unsubscribed", feed=self.name, subscribers=self.subscriber_count)

    async def deliver(self, subscription: Subscription, snapshot: list[IssueDocument]) -> None:
        """Send one snapshot to one subscriber, isolating its failures."""
        if not subscription.active:
            return
        try:
            result = subscription.callback(list(snapshot))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("feed_subscriber_failed", feed=self.name, error=str(e))

    async def publish(self, snapshot: list[IssueDocument]) -> None:
        """Deliver a snapshot to every current subscriber."""
        self.last_snapshot = list(snapshot)
        # Copy: callbacks may unsubscribe while we iterate
        for subscription in list(self._subscriptions):
            await self.deliver(subscription, snapshot)

    def close(self) -> None:
        """Drop every subscriber."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
