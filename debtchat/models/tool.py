import inspect
import json
from collections.abc import Callable
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(description="Backend-assigned identifier of the call")]
    name: Annotated[str, Field(description="Name of the tool to invoke")]
    arguments: Annotated[str, Field(default="{}", description="JSON-encoded arguments")]

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ToolDefinition(BaseModel):
    """A named host function exposed to the model.

    The description is the model's only contract for calling the tool, so it
    spells out parameter syntax and defaults.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: Annotated[str, Field(description="Stable wire identifier")]
    description: Annotated[str, Field(description="Model-facing usage contract")]
    parameters: Annotated[dict[str, Any], Field(description="JSON schema of the arguments")]
    function: Annotated[Callable[..., Any], Field(description="Sync or async callable implementing the tool")]

    def to_schema(self) -> dict[str, Any]:
        """Return the OpenAI-style function schema sent to the backend."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def invoke(self, arguments: str | dict[str, Any] | None = None) -> str:
        """Run the tool with JSON (or already decoded) arguments and return its result as text.

        Raises:
            json.JSONDecodeError: If ``arguments`` is not valid JSON
            TypeError: If the arguments do not match the function signature
        """
        if isinstance(arguments, str):
            kwargs = json.loads(arguments) if arguments.strip() else {}
        else:
            kwargs = dict(arguments or {})
        if not isinstance(kwargs, dict):
            raise TypeError(f"Tool arguments must be a JSON object, got {type(kwargs).__name__}")

        if inspect.iscoroutinefunction(self.function):
            result = await self.function(**kwargs)
        else:
            result = self.function(**kwargs)
        return str(result)
