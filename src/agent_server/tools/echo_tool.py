from __future__ import annotations

from .registry import ParamSpec, ToolSpec


def echo(text: str) -> str:
    return f"Echo: {text}"


echo_tool = ToolSpec(
    name="echo",
    description="Echoes back the input text. Useful for testing.",
    parameters=(ParamSpec(name="text", kind="string", description="The text to echo back"),),
    execute=echo,
)
