"""In-process publish/subscribe bus shared by the relay components."""

from collections import defaultdict
from typing import Any, Callable, Dict, List

from ..logger import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Synchronous topic-based publish/subscribe.

    Handlers run in subscription order on the publisher's stack. A failing
    handler is logged and does not prevent delivery to the remaining ones.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic``.

        Returns:
            A function that removes the subscription. Calling it twice is harmless.
        """
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[topic]

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> None:
        handlers = list(self._handlers.get(topic, ()))
        logger.debug("Publishing '%s' to %d handler(s).", topic, len(handlers))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.error("Handler for '%s' failed.", topic, exc_info=True)

    def listener_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))
