"""Wiring of the relay components from a RelayConfig."""

from types import TracebackType
from typing import Callable, List, Optional, Type

from .llm_impl import create_provider
from .relay_core import (
    AutoApproveRule,
    ChatSession,
    ChatStreamSource,
    ConfirmationChannel,
    EventBus,
    HttpJsonRpcTransport,
    InMemoryTranscript,
    RelayConfig,
    SnapshotBridge,
    ToolCallCoordinator,
    ToolExecutor,
    ToolRegistrationError,
    ToolRegistry,
    ToolTransport,
    TranscriptSink,
    allow_list_policy,
    get_logger,
    marker_policy,
)

logger = get_logger(__name__)


def auto_approve_rule(config: RelayConfig) -> AutoApproveRule:
    """The explicit allow-list when configured, otherwise the name-marker heuristic."""
    if config.auto_approve_tools is not None:
        return allow_list_policy(config.auto_approve_tools, config.skip_flag)
    return marker_policy(config.auto_approve_markers, config.skip_flag)


class ToolRelay:
    """
    A ready-to-use relay: one bus, one confirmation channel, one coordinator and
    one chat session sharing a transcript.

    The user interface subscribes to the bus topics to render tool events and
    confirmation prompts, and answers prompts through :meth:`respond`.
    """

    def __init__(
        self,
        config: RelayConfig,
        source: Optional[ChatStreamSource] = None,
        registry: Optional[ToolRegistry] = None,
        transport: Optional[ToolTransport] = None,
        bus: Optional[EventBus] = None,
        transcript: Optional[TranscriptSink] = None,
        on_flush: Optional[Callable[[str], None]] = None,
    ) -> None:
        """
        Args:
            config: Relay configuration.
            source: Model stream source. Built from ``config`` when omitted.
            registry: Tool registry matching ``source``. Built from ``config`` when omitted.
            transport: Tool transport. Defaults to JSON-RPC over HTTP at ``config.mcp_url``.
            bus: Event bus shared with the user interface.
            transcript: Sink receiving user, assistant and snapshot records.
            on_flush: Observer receiving the accumulated text of each flush.
        """
        if source is None or registry is None:
            default_source, default_registry = create_provider(config)
            source = source or default_source
            registry = registry or default_registry

        self.config = config
        self.bus = bus or EventBus()
        self.registry = registry
        self.transcript = transcript if transcript is not None else InMemoryTranscript()
        self._owned_transport: Optional[HttpJsonRpcTransport] = None
        if transport is None:
            self._owned_transport = HttpJsonRpcTransport(config.mcp_url, timeout=config.request_timeout)
            transport = self._owned_transport

        rule = auto_approve_rule(config)
        self.channel = ConfirmationChannel(self.bus, auto_approve=rule, timeout=config.confirmation_timeout)
        self.coordinator = ToolCallCoordinator(
            self.channel,
            ToolExecutor(transport),
            bus=self.bus,
            bridge=SnapshotBridge(),
            transcript=self.transcript,
        )
        self.session = ChatSession(
            source,
            self.coordinator,
            registry=registry,
            transcript=self.transcript,
            system_prompt=config.system_prompt,
            on_flush=on_flush,
            flush_interval=config.flush_interval,
        )
        logger.info(f"Relay ready (provider={config.provider}, model={config.model}, mcp={config.mcp_url}).")

    async def load_tools(self) -> List[str]:
        """Register the tools advertised by the HTTP endpoint via ``tools/list``.

        Only available when the relay owns its HTTP transport; with a custom
        transport, fill the registry directly (e.g. ``MCPClientWrapper.load_into``).

        Returns:
            The names of the tools that were registered.
        """
        if self._owned_transport is None:
            raise RuntimeError("load_tools() requires the relay's own HTTP transport.")

        registered = []
        for tool in await self._owned_transport.list_tools():
            try:
                self.registry.register(tool["name"], description=tool.get("description"), parameters=tool.get("inputSchema"))
            except ToolRegistrationError as e:
                logger.error("Error registering tool '%s': %s", tool["name"], e)
                continue
            registered.append(tool["name"])
        logger.info(f"Loaded {len(registered)} tool(s) from {self.config.mcp_url}.")
        return registered

    def respond(self, invocation_id: str, accepted: bool) -> None:
        """Answer a pending confirmation request."""
        self.channel.respond(invocation_id, accepted)

    def stop(self) -> None:
        self.session.stop()

    async def aclose(self) -> None:
        self.session.stop()
        await self.coordinator.wait_all()
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> "ToolRelay":
        return self

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        await self.aclose()
