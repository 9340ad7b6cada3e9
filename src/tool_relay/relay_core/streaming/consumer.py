"""Consumes a model stream, surfacing text and dispatching tool calls."""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator, Callable, Dict, Optional, Sequence, Set

from ..cancellation import CancellationToken
from ..coordinator import ToolCallCoordinator
from ..exceptions import OperationCancelledError, SchemaError
from ..logger import get_logger
from ..tools.models import ToolCallRequest
from ..tools.repair import RepairPolicy
from .models import ChatStreamSource, StreamEvent, StreamResult, StreamSession

logger = get_logger(__name__)

INTERRUPTED_MARKER = " [stream interrupted]"
DEFAULT_FLUSH_INTERVAL = 0.06

_END = object()


async def _next_event(iterator: AsyncIterator[StreamEvent]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


class StreamingTokenConsumer:
    """
    Accumulates streamed text and hands tool calls to the coordinator.

    Partial text is flushed to ``on_flush`` when more than ``flush_interval``
    seconds passed since the previous flush or when a chunk contains a line
    break, and once more with the complete text at the end. Tool calls go
    through the repair policy and then run as independent tasks, so text keeps
    streaming while they wait for confirmation or execute.
    """

    def __init__(
        self,
        source: ChatStreamSource,
        coordinator: Optional[ToolCallCoordinator] = None,
        repair: Optional[RepairPolicy] = None,
        on_flush: Optional[Callable[[str], None]] = None,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._coordinator = coordinator
        self._repair = repair
        self._on_flush = on_flush
        self._flush_interval = flush_interval
        self._clock = clock
        self._drains: Set[asyncio.Task] = set()

    async def consume(
        self,
        messages: Sequence[Dict[str, Any]],
        tools: Optional[Any] = None,
        token: Optional[CancellationToken] = None,
    ) -> StreamResult:
        """Stream one completion.

        If the provider rejects the tool definitions, the request is retried
        once with the same messages and no tools.

        Args:
            messages: Chat history in ``{role, content}`` form.
            tools: Provider tool payload or None.
            token: Turn cancellation token.

        Returns:
            The streamed text, with ``interrupted`` set if the token fired.

        Raises:
            SchemaError: If the retry without tools is rejected as well.
            Exception: Any other provider error, after partial output was marked interrupted.
        """
        token = token or CancellationToken()
        first = StreamResult(text="", used_tools=tools is not None)
        try:
            return await self._consume_once(messages, tools, token, first)
        except SchemaError as exc:
            if tools is None:
                raise
            logger.warning("Provider rejected the tool definitions (%s); retrying without tools.", exc)

        # Calls dispatched before the rejection still belong to this turn
        retry = StreamResult(text="", used_tools=False, tool_tasks=first.tool_tasks, dropped_calls=first.dropped_calls)
        return await self._consume_once(messages, None, token, retry)

    async def _consume_once(
        self,
        messages: Sequence[Dict[str, Any]],
        tools: Optional[Any],
        token: CancellationToken,
        result: StreamResult,
    ) -> StreamResult:
        session = StreamSession(token=token, last_flush=self._clock())
        iterator = self._source.stream(messages, tools).__aiter__()
        exhausted = False

        try:
            while True:
                event = await token.guard(_next_event(iterator))
                if event is _END:
                    exhausted = True
                    break
                if event.type == "text" and event.content:
                    self._append(session, event.content)
                elif event.type == "tool_call" and event.tool_call is not None:
                    self._dispatch(event.tool_call, token, result)
                elif event.type == "finish":
                    logger.debug("Model finished (%s).", event.finish_reason)
                    break
        except OperationCancelledError:
            logger.info("Stream interrupted by the user.")
            self._mark_interrupted(session)
            await self._close(iterator)
            result.text = session.buffer
            result.interrupted = True
            return result
        except SchemaError:
            await self._close(iterator)
            raise
        except Exception as exc:
            logger.warning("Stream interrupted: %s", exc)
            self._mark_interrupted(session)
            await self._close(iterator)
            raise

        session.completed = True
        self._flush(session)
        result.text = session.buffer
        if not exhausted:
            self._drain(iterator, token)
        return result

    def _append(self, session: StreamSession, chunk: str) -> None:
        session.buffer += chunk
        now = self._clock()
        if now - session.last_flush > self._flush_interval or "\n" in chunk:
            self._flush(session, now)

    def _flush(self, session: StreamSession, now: Optional[float] = None) -> None:
        session.last_flush = self._clock() if now is None else now
        session.flush_count += 1
        if self._on_flush is not None:
            self._on_flush(session.buffer)

    def _mark_interrupted(self, session: StreamSession) -> None:
        if session.buffer:
            session.buffer += INTERRUPTED_MARKER
            self._flush(session)

    def _dispatch(self, call: ToolCallRequest, token: CancellationToken, result: StreamResult) -> None:
        reviewed = self._repair.review(call) if self._repair is not None else call
        if reviewed is None:
            result.dropped_calls += 1
            return
        if self._coordinator is None:
            logger.warning("Tool call '%s' emitted but no coordinator is attached.", reviewed.name)
            return
        result.tool_tasks.append(self._coordinator.submit(reviewed, token))

    def _drain(self, iterator: AsyncIterator[StreamEvent], token: CancellationToken) -> None:
        """Keep reading the rest of the stream in the background so the server side completes."""

        async def drain() -> None:
            discarded = 0
            try:
                while await token.guard(_next_event(iterator)) is not _END:
                    discarded += 1
            except OperationCancelledError:
                pass
            finally:
                await self._close(iterator)
                logger.debug("Stream drained (%d trailing event(s) discarded).", discarded)

        task = asyncio.create_task(drain())
        self._drains.add(task)
        task.add_done_callback(self._drains.discard)

    async def wait_drained(self) -> None:
        if self._drains:
            await asyncio.gather(*list(self._drains), return_exceptions=True)

    @staticmethod
    async def _close(iterator: AsyncIterator[StreamEvent]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.debug("Closing the stream failed.", exc_info=True)
