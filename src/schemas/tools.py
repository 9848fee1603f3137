from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


def _is_json_schema(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return (
        value.get("type") == "object"
        or isinstance(value.get("properties"), dict)
        or isinstance(value.get("required"), list)
    )


class ToolParameter(BaseModel):
    type: str = Field(default="string", description="JSON type of the parameter")
    required: bool = Field(default=False)
    description: str = Field(default="")


class ToolDescriptor(BaseModel):
    """A tool advertised by the MCP server."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    parameters: Dict[str, ToolParameter] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("parameters", "parameterSchema", "inputSchema"),
    )
    category: Optional[str] = Field(
        default=None,
        description="Explicit category tag; takes precedence over name-based classification",
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_json_schema(cls, data: Any) -> Any:
        """Accept a JSON-schema style ``{"type": "object", "properties": ..., "required": [...]}`` block.

        An object schema without ``properties`` describes a tool that takes no arguments.
        """
        if not isinstance(data, dict):
            return data
        for key in ("parameters", "parameterSchema", "inputSchema"):
            schema = data.get(key)
            if _is_json_schema(schema):
                properties = schema.get("properties")
                required = set(schema.get("required") or [])
                flattened = {}
                for name, spec in (properties if isinstance(properties, dict) else {}).items():
                    spec = spec if isinstance(spec, dict) else {}
                    flattened[name] = {
                        "type": str(spec.get("type", "string")),
                        "required": name in required,
                        "description": spec.get("description", ""),
                    }
                return {**data, key: flattened}
        return data


class ToolInvocationResult(BaseModel):
    """Outcome of one tool execution. Carries either a result or an error."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Any] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _validate_outcome(self) -> "ToolInvocationResult":
        if self.result is not None and self.error is not None:
            raise ValueError("A tool result cannot carry both a result and an error.")
        return self

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name, "arguments": dict(self.arguments)}
        if self.succeeded:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        return payload
