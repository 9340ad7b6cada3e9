"""Streamed chat completions from OpenAI-compatible endpoints."""

import json
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, cast

import httpx
import openai
from openai import AsyncOpenAI

from tool_relay.relay_core import NetworkError, SchemaError, StreamEvent, ToolCallRequest, get_logger

logger = get_logger(__name__)


class OpenAIChatStream:
    """
    Opens a streamed ``chat.completions`` request and normalizes its chunks.

    Tool-call fragments arrive spread over many chunks, keyed by their index in
    the choice. They are accumulated and emitted as complete calls once the
    choice reports a finish reason (or the stream ends).
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str,
        temp: float = 1.0,
        max_tokens: int = 4096,
    ) -> None:
        """
        Args:
            client: The initialized AsyncOpenAI client.
            model_name: The model identifier (e.g. 'gpt-4o-mini').
            temp: Sampling temperature.
            max_tokens: Maximum number of tokens generated per completion.
        """
        self.client = client
        self.model = model_name
        self.temperature = temp
        self.max_tokens = max_tokens

    async def stream(
        self, messages: Sequence[Dict[str, Any]], tools: Optional[Any] = None
    ) -> AsyncIterator[StreamEvent]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": cast(Iterable[Any], list(messages)),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools

        logger.debug(f"Opening OpenAI stream (model={self.model}, tools={len(tools) if tools else 0}).")
        try:
            response = await self.client.chat.completions.create(**payload)
        except openai.BadRequestError as exc:
            if tools:
                raise SchemaError(str(exc), status_code=exc.status_code) from exc
            raise
        except openai.APIConnectionError as exc:
            raise NetworkError(f"OpenAI endpoint unreachable: {exc}") from exc

        pending: Dict[int, Dict[str, Any]] = {}
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta

                if delta is not None:
                    if delta.content:
                        yield StreamEvent(type="text", content=delta.content)
                    for fragment in delta.tool_calls or []:
                        slot = pending.setdefault(fragment.index, {"id": None, "name": "", "arguments": ""})
                        if fragment.id:
                            slot["id"] = fragment.id
                        if fragment.function is not None:
                            if fragment.function.name:
                                slot["name"] += fragment.function.name
                            if fragment.function.arguments:
                                slot["arguments"] += fragment.function.arguments

                if choice.finish_reason:
                    for call in self._complete_calls(pending):
                        yield StreamEvent(type="tool_call", tool_call=call)
                    yield StreamEvent(type="finish", finish_reason=choice.finish_reason)

            for call in self._complete_calls(pending):
                yield StreamEvent(type="tool_call", tool_call=call)
        except (openai.APIConnectionError, httpx.TransportError) as exc:
            raise NetworkError(f"OpenAI stream broke off: {exc}") from exc
        finally:
            await response.close()

    @staticmethod
    def _complete_calls(pending: Dict[int, Dict[str, Any]]) -> List[ToolCallRequest]:
        calls = [OpenAIChatStream._to_request(pending[index]) for index in sorted(pending)]
        pending.clear()
        return calls

    @staticmethod
    def _to_request(slot: Dict[str, Any]) -> ToolCallRequest:
        raw = slot["arguments"]
        arguments: Any
        if not raw.strip():
            arguments = {}
        else:
            try:
                arguments = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Tool call '{slot['name']}' carried undecodable arguments.")
                arguments = raw
        return ToolCallRequest(name=slot["name"], arguments=arguments, call_id=slot["id"])
