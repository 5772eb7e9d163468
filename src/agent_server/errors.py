"""Structured errors surfaced at the service boundary.

Every turn-level failure is raised as an ``AgentServerError`` carrying a stable
code from ``ERROR_CATALOG``. Tool failures never show up here: they are turned
into tool results inside the turn so the model can react to them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int
    category: str
    troubleshooting: tuple[str, ...] = field(default_factory=tuple)


ERROR_CATALOG: dict[str, ErrorDefinition] = {
    entry.code: entry
    for entry in (
        ErrorDefinition(
            code="LGR_VAL_001",
            message="Message is required and must be a string",
            status_code=400,
            category="VAL",
            troubleshooting=(
                'Ensure request body contains "message" field',
                "Verify message is a non-empty string",
            ),
        ),
        ErrorDefinition(
            code="LGR_VAL_002",
            message="Invalid thread ID format",
            status_code=400,
            category="VAL",
            troubleshooting=(
                "Thread ID should be a non-empty string",
                "Use previously returned thread IDs",
                "Leave threadId empty for new conversations",
            ),
        ),
        ErrorDefinition(
            code="LGR_CFG_001",
            message="Invalid model configuration",
            status_code=400,
            category="CFG",
            troubleshooting=(
                "Provider must be 'primary' or 'local'",
                "Ensure temperature is between 0.0 and 1.0",
            ),
        ),
        ErrorDefinition(
            code="LGR_SYS_001",
            message="Agent graph invocation failed",
            status_code=500,
            category="SYS",
            troubleshooting=(
                "Check the model provider credentials",
                "Review agent logs for the underlying exception",
            ),
        ),
        ErrorDefinition(
            code="LGR_SYS_002",
            message="No response generated by agent",
            status_code=500,
            category="SYS",
            troubleshooting=(
                "Check that the model returned an assistant message",
                "Review agent logs for the last message in the thread",
            ),
        ),
        ErrorDefinition(
            code="LGR_NET_001",
            message="External service communication failed",
            status_code=502,
            category="NET",
            troubleshooting=(
                "Verify the model endpoint is reachable",
                "Raise MODEL_TIMEOUT_SECONDS for slow local models",
            ),
        ),
        ErrorDefinition(
            code="TOOL_NF_001",
            message="Tool not found",
            status_code=404,
            category="VAL",
            troubleshooting=("List available tools with GET /tools",),
        ),
    )
}


class AgentServerError(Exception):
    """Base class for errors returned to callers as structured payloads."""

    default_code = "LGR_SYS_001"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        self.code = code or self.default_code
        definition = ERROR_CATALOG[self.code]
        self.message = message or definition.message
        self.status_code = definition.status_code
        self.troubleshooting = definition.troubleshooting
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
            "statusCode": self.status_code,
        }
        if self.details is not None:
            payload["details"] = self.details
        if self.troubleshooting:
            payload["troubleshooting"] = list(self.troubleshooting)
        return payload


class ValidationFailed(AgentServerError):
    default_code = "LGR_VAL_001"


class ModelInvocationError(AgentServerError):
    default_code = "LGR_SYS_001"


class NoResponseError(AgentServerError):
    default_code = "LGR_SYS_002"


class ToolNotFoundError(AgentServerError):
    default_code = "TOOL_NF_001"
