"""Streamed content generation from Google Gemini."""

from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import httpx
from google.genai import errors, types
from google.genai.client import AsyncClient

from tool_relay.relay_core import NetworkError, SchemaError, StreamEvent, ToolCallRequest, get_logger

logger = get_logger(__name__)


class GeminiChatStream:
    """
    Opens a ``generate_content_stream`` request and normalizes its chunks.

    Gemini delivers function calls whole, so each ``function_call`` part becomes
    one tool-call event. A ``MALFORMED_FUNCTION_CALL`` finish reason is surfaced
    as a malformed emission and left to the repair policy.
    """

    def __init__(
        self,
        aclient: AsyncClient,
        model_name: str,
        temp: float = 1.0,
        max_tokens: int = 4096,
    ) -> None:
        """
        Args:
            aclient: The initialized Google GenAI async client (``Client(...).aio``).
            model_name: The Gemini model identifier (e.g. 'gemini-2.5-flash').
            temp: Sampling temperature.
            max_tokens: Maximum number of output tokens.
        """
        self.client = aclient
        self.model = model_name
        self.temperature = temp
        self.max_tokens = max_tokens

    async def stream(
        self, messages: Sequence[Dict[str, Any]], tools: Optional[Any] = None
    ) -> AsyncIterator[StreamEvent]:
        system_instruction, contents = self._convert_messages(messages)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            tools=[tools] if tools else None,
        )

        logger.debug(f"Opening Gemini stream (model={self.model}, tools={'yes' if tools else 'no'}).")
        try:
            response = await self.client.models.generate_content_stream(
                model=self.model, contents=contents, config=config  # type: ignore[arg-type]
            )
            async for chunk in response:
                for event in self._chunk_events(chunk):
                    yield event
        except errors.ClientError as exc:
            if tools and exc.code == 400:
                raise SchemaError(str(exc), status_code=exc.code) from exc
            raise
        except httpx.TransportError as exc:
            raise NetworkError(f"Gemini endpoint unreachable: {exc}") from exc

    @staticmethod
    def _chunk_events(chunk: types.GenerateContentResponse) -> List[StreamEvent]:
        if not chunk.candidates:
            return []
        candidate = chunk.candidates[0]
        events: List[StreamEvent] = []

        parts = candidate.content.parts if candidate.content and candidate.content.parts else []
        for part in parts:
            if part.function_call is not None:
                call = part.function_call
                events.append(
                    StreamEvent(
                        type="tool_call",
                        tool_call=ToolCallRequest(
                            name=call.name or "", arguments=dict(call.args or {}), call_id=call.id
                        ),
                    )
                )
            elif part.text and not part.thought:
                events.append(StreamEvent(type="text", content=part.text))

        reason = candidate.finish_reason
        if reason is not None:
            if reason == types.FinishReason.MALFORMED_FUNCTION_CALL:
                logger.warning(f"Gemini reported a malformed function call: {candidate.finish_message}")
                events.append(
                    StreamEvent(
                        type="tool_call",
                        tool_call=ToolCallRequest(name="", arguments=candidate.finish_message, malformed=True),
                    )
                )
            events.append(StreamEvent(type="finish", finish_reason=str(getattr(reason, "value", reason))))
        return events

    @staticmethod
    def _convert_messages(messages: Sequence[Dict[str, Any]]) -> Tuple[Optional[str], List[types.Content]]:
        """
        Splits ``{role, content}`` messages into a system instruction and Gemini contents.

        Gemini has no system role in the conversation; system messages are joined
        into the request's ``system_instruction``.
        """
        system_parts: List[str] = []
        contents: List[types.Content] = []
        for message in messages:
            role = message.get("role")
            text = message.get("content") or ""
            if role == "system":
                system_parts.append(text)
            elif role == "user":
                contents.append(types.Content(role="user", parts=[types.Part(text=text)]))
            elif role == "assistant":
                contents.append(types.Content(role="model", parts=[types.Part(text=text)]))
        return ("\n\n".join(system_parts) or None), contents
