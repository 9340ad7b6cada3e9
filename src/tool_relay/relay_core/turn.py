"""One user-initiated chat turn: stream, run tools, record the transcript."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .cancellation import CancellationToken
from .coordinator import ToolCallCoordinator
from .exceptions import describe_error
from .logger import get_logger
from .messages import AssistantMessage, BaseMessage, SessionRecord, SystemMessage, UserMessage
from .session.transcript import TranscriptSink
from .streaming import DEFAULT_FLUSH_INTERVAL, ChatStreamSource, StreamingTokenConsumer
from .tools.models import ToolInvocation
from .tools.registry import ToolRegistry
from .tools.repair import RepairPolicy

logger = get_logger(__name__)


@dataclass
class TurnResult:
    """
    Outcome of :meth:`ChatSession.send`.

    Attributes:
        text: Final assistant text (with the interruption marker if stopped).
        interrupted: True when the user stopped the turn.
        used_tools: False when the request was retried without tools.
        invocations: Tool invocations started during the turn, in terminal state.
        error: Categorized user-facing message when the turn failed.
        exception: The underlying exception when the turn failed.
    """

    text: str = ""
    interrupted: bool = False
    used_tools: bool = True
    invocations: List[ToolInvocation] = field(default_factory=list)
    error: Optional[str] = None
    exception: Optional[BaseException] = None


class ChatSession:
    """
    Conversation bound to one model stream source and one tool coordinator.

    Each :meth:`send` creates a fresh cancellation token for the turn; :meth:`stop`
    fires it, which aborts the stream, any pending confirmation and any
    in-flight tool call of that turn.
    """

    def __init__(
        self,
        source: ChatStreamSource,
        coordinator: ToolCallCoordinator,
        registry: Optional[ToolRegistry] = None,
        transcript: Optional[TranscriptSink] = None,
        system_prompt: str = "",
        history: Optional[List[BaseMessage]] = None,
        on_flush: Optional[Callable[[str], None]] = None,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    ) -> None:
        self.coordinator = coordinator
        self.registry = registry
        self.history: List[BaseMessage] = list(history or [])
        self._source = source
        self._transcript = transcript
        self._system_prompt = system_prompt
        self._repair = RepairPolicy(registry) if registry is not None else None
        self._on_flush = on_flush
        self._flush_interval = flush_interval
        self._token: Optional[CancellationToken] = None

    @property
    def busy(self) -> bool:
        return self._token is not None

    def stop(self) -> None:
        """Cancel the turn in progress, if any."""
        if self._token is not None:
            logger.info("Stopping the current turn.")
            self._token.cancel("Stopped by user")

    def _build_messages(self, user_text: str) -> List[dict]:
        messages: List[BaseMessage] = []
        if self._system_prompt:
            messages.append(SystemMessage(content=self._system_prompt))
        messages.extend(self.history)
        messages.append(UserMessage(content=user_text))
        return [m.to_provider() for m in messages if m.content and m.content.strip()]

    def _record(self, message: BaseMessage) -> None:
        self.history.append(message)
        if self._transcript is not None:
            self._transcript.append(SessionRecord(role=message.role, content=message.content))

    async def send(self, user_text: str) -> TurnResult:
        """Run one turn for ``user_text``.

        Returns:
            The turn's outcome. Provider failures are reported through
            ``error``/``exception`` rather than raised.
        """
        if self._token is not None:
            raise RuntimeError("A turn is already in progress.")

        messages = self._build_messages(user_text)
        self._record(UserMessage(content=user_text))

        token = CancellationToken()
        self._token = token
        tools = self.registry.tool_object if self.registry is not None and self.registry.tools else None
        consumer = StreamingTokenConsumer(
            self._source,
            coordinator=self.coordinator,
            repair=self._repair,
            on_flush=self._on_flush,
            flush_interval=self._flush_interval,
        )

        turn = TurnResult()
        try:
            stream = await consumer.consume(messages, tools, token)
            turn.text = stream.text
            turn.interrupted = stream.interrupted
            turn.used_tools = stream.used_tools
            outcomes = await asyncio.gather(*stream.tool_tasks, return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, ToolInvocation):
                    turn.invocations.append(outcome)
                else:
                    logger.error("Tool invocation crashed: %s", outcome)
        except Exception as exc:
            turn.exception = exc
            turn.error = describe_error(exc)
            logger.error("Chat turn failed: %s", turn.error, exc_info=True)
            # Unfinished tool calls belong to the failed turn
            token.cancel("Turn failed")
            await self.coordinator.wait_all()
        finally:
            self._token = None

        if turn.text:
            self._record(AssistantMessage(content=turn.text))
        return turn
