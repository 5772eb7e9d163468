"""System prompt assembly.

Static guidance lives in .txt sections next to this module and is composed in
order; the list of available tools is rendered from the registry so the prompt
never drifts from what is actually bound to the model. Set SYSTEM_PROMPT to
replace the whole prompt.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..tools import ToolRegistry

logger = logging.getLogger(__name__)

PROMPT_SECTION_ORDER = ("base", "crypto")


def _prompts_dir() -> Path:
    return Path(__file__).resolve().parent


def _load_section(name: str) -> str:
    path = _prompts_dir() / f"{name}.txt"
    if not path.exists():
        logger.warning("Prompt section not found: %s", path)
        return ""
    return path.read_text(encoding="utf-8").strip()


def describe_tools(registry: ToolRegistry) -> str:
    """Render one line per tool, in registry order."""

    if not len(registry):
        return "No tools are available in this session."
    lines = ["Available tools:"]
    for spec in registry:
        params = ", ".join(
            param.name if param.required else f"{param.name}?" for param in spec.parameters
        )
        lines.append(f"- {spec.name}({params}): {spec.description}")
    return "\n".join(lines)


def build_system_prompt(
    registry: ToolRegistry,
    *,
    section_order: tuple[str, ...] | None = None,
    separator: str = "\n\n",
) -> str:
    """Join the static sections and the tool listing."""

    parts = [_load_section(name) for name in (section_order or PROMPT_SECTION_ORDER)]
    parts.append(describe_tools(registry))
    return separator.join(part for part in parts if part)


def get_system_prompt(registry: ToolRegistry, override: str | None = None) -> str:
    """Return the system prompt for the agent, honouring an explicit override."""

    if override and override.strip():
        return override.strip()
    return build_system_prompt(registry)


__all__ = [
    "PROMPT_SECTION_ORDER",
    "build_system_prompt",
    "describe_tools",
    "get_system_prompt",
]
