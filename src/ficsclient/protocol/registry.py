"""Fan-out of logical lines to registered listeners."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]
CloseCallback = Callable[[BaseException], None]

_ids = count(1)


@dataclass(eq=False)
class Subscription:
    """A listener registered against the line stream."""

    on_line: LineCallback
    on_close: CloseCallback | None = None
    name: str | None = None
    id: int = field(default_factory=lambda: next(_ids))
    active: bool = True

    def __repr__(self) -> str:
        state = "active" if self.active else "unregistered"
        return f"<Subscription {self.name or self.id} {state}>"


class SubscriptionRegistry:
    """Delivers every logical line to every active listener, in order.

    Delivery is synchronous: a line reaches all listeners before the next
    line is dispatched. Listeners may subscribe or unsubscribe (themselves or
    others) while a line is being delivered; the listeners invoked for a line
    are those active when its delivery started and still active when their
    turn comes.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._closed = False

    def __len__(self) -> int:
        return len(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self,
        on_line: LineCallback,
        on_close: CloseCallback | None = None,
        *,
        name: str | None = None,
    ) -> Subscription:
        """Register a listener.

        Args:
            on_line: Called with each logical line.
            on_close: Called once if the registry closes while subscribed.
            name: Label used in log messages.

        Returns:
            Handle used to unsubscribe.
        """
        subscription = Subscription(on_line=on_line, on_close=on_close, name=name)
        if self._closed:
            subscription.active = False
        else:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Unregister a listener. Calling it again has no effect."""
        if not subscription.active:
            return
        subscription.active = False
        self._subscriptions.remove(subscription)

    def dispatch(self, line: str) -> None:
        """Deliver a line to the listeners active right now."""
        for subscription in tuple(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.on_line(line)
            except Exception:
                logger.exception("Listener %r failed on line %r", subscription, line)

    def close(self, exc: BaseException) -> None:
        """Unregister every listener, telling each why."""
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.active = False
            if subscription.on_close is None:
                continue
            try:
                subscription.on_close(exc)
            except Exception:
                logger.exception("Close handler of %r failed", subscription)
