"""Topic-based change feed shared by the dashboard services.

Every service keeps its own state and announces changes on a topic from
:class:`~seawatch.core.events.types.EventTypes`. Consumers such as the alerts
service or a websocket layer listen on those topics. ``subscribe`` returns the
matching unsubscribe callable, so a consumer never has to keep a reference to
its own handler.

Example usage:
    from seawatch.core.events import EventTypes, get_event_bus

    async def on_alerts(payload: dict) -> None:
        render(payload["alerts"])

    unsubscribe = get_event_bus().subscribe(EventTypes.ALERTS_CHANGED, on_alerts)
    ...
    unsubscribe()
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]
Unsubscribe = Callable[[], None]


def _name_of(handler: EventHandler) -> str:
    return getattr(handler, "__name__", repr(handler))


@dataclass
class HandlerFailure:
    """A handler that raised while a change was being delivered."""

    handler_name: str
    exception: Exception
    event_type: str


class EventBus:
    """Delivers change payloads to the handlers listening on a topic.

    Delivery is sequential in subscription order. A handler that raises is
    recorded as a :class:`HandlerFailure` and the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """Start delivering ``event_type`` payloads to ``handler``.

        Returns:
            A callable removing the handler again; extra calls do nothing.
        """
        self._handlers[event_type].append(handler)
        logger.bind(event_type=event_type).debug(f"{_name_of(handler)} listening")

        def _unsubscribe() -> None:
            if handler in self._handlers.get(event_type, []):
                self.unsubscribe(event_type, handler)

        return _unsubscribe

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        listeners = self._handlers.get(event_type, [])
        if handler not in listeners:
            logger.bind(event_type=event_type).warning(
                f"{_name_of(handler)} is not subscribed"
            )
            return
        listeners.remove(handler)
        logger.bind(event_type=event_type).debug(f"{_name_of(handler)} stopped listening")

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def clear(self) -> None:
        """Drop every subscription, used between tests."""
        self._handlers.clear()
        logger.debug("Event bus cleared")

    async def publish(
        self, event_type: str, payload: dict[str, Any]
    ) -> list[HandlerFailure]:
        """Deliver ``payload`` to every handler on ``event_type``.

        Args:
            event_type: Topic to deliver on.
            payload: Change data handed to each handler as-is.

        Returns:
            One :class:`HandlerFailure` per handler that raised, empty on success.
        """
        # Snapshot so handlers may unsubscribe while being notified
        listeners = list(self._handlers.get(event_type, []))
        log = logger.bind(event_type=event_type)
        if not listeners:
            log.debug("Change published with no listeners")
            return []

        failures: list[HandlerFailure] = []
        for handler in listeners:
            try:
                await handler(payload)
            except Exception as e:  # noqa: BLE001 - one listener must not starve the rest
                log.exception(f"{_name_of(handler)} failed handling change")
                failures.append(
                    HandlerFailure(
                        handler_name=_name_of(handler),
                        exception=e,
                        event_type=event_type,
                    )
                )

        if failures:
            log.warning(f"{len(failures)} of {len(listeners)} listener(s) failed")
        return failures


# Module-level singleton instance (created at import time for thread safety)
_event_bus = EventBus()


def get_event_bus() -> EventBus:
    """The process-wide bus the service singletons share."""
    return _event_bus
