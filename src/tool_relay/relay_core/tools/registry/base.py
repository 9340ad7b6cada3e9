"""Tool registry abstraction."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from ..models import ToolDefinition
from ..schema import SchemaValidator
from ...exceptions import SchemaError, ToolRegistrationError
from ...logger import get_logger

logger = get_logger(__name__)


class ToolRegistry(ABC):
    """
    A central registry of the remote tools the model may call.

    The registry knows every recognized tool name and its argument schema. It
    feeds the repair policy and renders the provider-specific tool payload.
    """

    def __init__(self) -> None:
        self.tools: Dict[str, ToolDefinition] = {}

    def register(
        self,
        name_or_tool: Union[str, ToolDefinition],
        description: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Register a remote tool.

        Args:
            name_or_tool: Either a `ToolDefinition` or the tool's name.
            description: What the tool does. Defaults to a generic description when a name is given.
            parameters: JSON schema of the arguments. `$ref`s are inlined and the schema sanitized.

        Raises:
            ToolRegistrationError: If the tool already exists or its schema is recursive.
        """
        if isinstance(name_or_tool, ToolDefinition):
            tool = name_or_tool
        else:
            tool = ToolDefinition(
                name=name_or_tool,
                description=description or f"Tool {name_or_tool} provided by the MCP server.",
                parameters=parameters,
            )

        if tool.name in self.tools:
            msg = f"Tool '{tool.name}' is already registered."
            logger.error(msg)
            raise ToolRegistrationError(msg)

        if tool.parameters:
            try:
                resolved = SchemaValidator.resolve_refs(tool.parameters)
            except SchemaError as exc:
                raise ToolRegistrationError(f"Tool '{tool.name}' has an unsupported schema: {exc}") from exc
            tool = tool.model_copy(update={"parameters": SchemaValidator.sanitize_schema(resolved)})

        self.tools[tool.name] = tool
        logger.info(f"Successfully registered tool: '{tool.name}'")

    def unregister(self, tool_name: str) -> None:
        if tool_name not in self.tools:
            raise ToolRegistrationError(f"Tool '{tool_name}' not found in the registry.")
        del self.tools[tool_name]
        logger.info(f"Successfully unregistered tool: '{tool_name}'")

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self.tools

    @property
    def names(self) -> List[str]:
        return list(self.tools)

    def required_fields(self, tool_name: str) -> List[str]:
        tool = self.tools.get(tool_name)
        return tool.required_fields if tool else []

    @property
    @abstractmethod
    def tool_object(self) -> Any:
        """Constructs the tool payload specific to the model provider.

        Returns:
            The provider-specific tool representation, or None if no tools are registered.
        """
        pass
