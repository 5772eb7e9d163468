"""Tool descriptors and the read-only registry shared by every turn.

Each tool declares its parameters with ``ParamSpec``; the declarations are
turned into a pydantic args model that validates tool-call arguments and,
wrapped in a LangChain ``StructuredTool``, renders the function declaration
bound to the model and the manifest advertised over HTTP.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import Annotated, Any, Literal

from langchain_core.tools import StructuredTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, ValidationError, create_model

logger = logging.getLogger(__name__)

ParamKind = Literal["string", "number", "boolean", "enum"]

# JSON numbers are never NaN or infinite; bool is not accepted as a number
_ANNOTATIONS: dict[str, Any] = {
    "string": Annotated[str, Strict()],
    "number": Annotated[float, Strict(), AllowInfNan(False)],
    "boolean": Annotated[bool, Strict()],
}


class ToolArgumentError(ValueError):
    """Raised when tool-call arguments do not match the tool's parameters."""


@dataclass(frozen=True)
class ParamSpec:
    name: str
    kind: ParamKind
    description: str
    required: bool = True
    default: Any = None
    choices: tuple[str, ...] = ()

    def annotation(self) -> Any:
        if self.kind == "enum":
            return Literal[self.choices]
        return _ANNOTATIONS[self.kind]

    def field_definition(self) -> tuple[Any, Any]:
        if self.required:
            return self.annotation(), Field(..., description=self.description)
        return self.annotation(), Field(default=self.default, description=self.description)


def _argument_error(exc: ValidationError) -> ToolArgumentError:
    missing: list[str] = []
    unexpected: list[str] = []
    invalid: list[str] = []
    for error in exc.errors(include_url=False):
        name = str(error["loc"][0]) if error["loc"] else "arguments"
        if error["type"] == "missing":
            missing.append(f"missing required argument '{name}'")
        elif error["type"] == "extra_forbidden":
            unexpected.append(name)
        else:
            invalid.append(f"'{name}': {error['msg']}")
    if unexpected:
        return ToolArgumentError(f"unexpected argument(s): {', '.join(sorted(unexpected))}")
    return ToolArgumentError("; ".join(missing + invalid))


@dataclass(frozen=True)
class ToolSpec:
    """A named callable exposed to the model."""

    name: str
    description: str
    execute: Callable[..., Any]
    parameters: tuple[ParamSpec, ...] = field(default_factory=tuple)

    @cached_property
    def args_model(self) -> type[BaseModel]:
        return create_model(
            f"{self.name}_args",
            __config__=ConfigDict(extra="forbid"),
            **{param.name: param.field_definition() for param in self.parameters},
        )

    @cached_property
    def tool(self) -> StructuredTool:
        return StructuredTool(
            name=self.name,
            description=self.description,
            args_schema=self.args_model,
            func=self.execute,
        )

    def validate(self, args: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return ``args`` checked against the parameters, with defaults applied."""

        if args is not None and not isinstance(args, Mapping):
            raise ToolArgumentError("arguments must be an object")
        # A null argument means "not provided"
        provided = {key: value for key, value in (args or {}).items() if value is not None}
        try:
            validated = self.args_model.model_validate(provided)
        except ValidationError as exc:
            raise _argument_error(exc) from exc
        return validated.model_dump()

    def function_schema(self) -> dict[str, Any]:
        """OpenAI-style function declaration, accepted by ``bind_tools``."""

        return convert_to_openai_tool(self.tool)

    def parameters_schema(self) -> dict[str, Any]:
        return self.function_schema()["function"]["parameters"]

    def manifest(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameterSchema": self.parameters_schema(),
        }


def stringify_result(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


class ToolRegistry:
    """Fixed set of tools, built once at startup and never mutated."""

    def __init__(self, tools: Iterable[ToolSpec]) -> None:
        by_name: dict[str, ToolSpec] = {}
        for spec in tools:
            if spec.name in by_name:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            by_name[spec.name] = spec
        self._tools: Mapping[str, ToolSpec] = by_name

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def function_schemas(self) -> list[dict[str, Any]]:
        return [spec.function_schema() for spec in self]

    def manifests(self) -> list[dict[str, Any]]:
        return [spec.manifest() for spec in self]

    async def run(self, name: str, args: Mapping[str, Any] | None, *, timeout: float) -> str:
        """Execute one tool call and return its result as a string.

        Never raises: lookup, validation, timeout and execution failures all
        come back as an ``Error: ...`` string.
        """

        spec = self._tools.get(name)
        if spec is None:
            logger.warning("[TOOLS] Tool not found: %s", name)
            return f"Error: Tool '{name}' not found"

        try:
            validated = spec.validate(args)
        except ToolArgumentError as exc:
            logger.warning("[TOOLS] Invalid arguments for %s: %s", name, exc)
            return f"Error: Invalid arguments for tool '{name}': {exc}"

        logger.info("[TOOLS] Executing %s with %s", name, str(validated)[:500])
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(spec.execute, **validated), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning("[TOOLS] %s timed out after %ss", name, timeout)
            return f"Error: Tool '{name}' timed out after {timeout:g}s"
        except Exception as exc:
            logger.exception("[TOOLS] Tool execution failed: %s", name)
            return f"Error: Tool '{name}' failed: {exc}"

        observation = stringify_result(result)
        logger.info("[TOOLS] %s result: %s", name, observation[:500])
        return observation
