from __future__ import annotations

from .registry import ParamSpec, ToolSpec


def research(query: str) -> str:
    """Return a deterministic placeholder until a search backend is wired in."""

    topic = query.strip()
    return (
        f'Research results for "{topic}": no research backend is configured, '
        "so no sources were consulted. Answer from general knowledge and say so."
    )


research_tool = ToolSpec(
    name="research",
    description="Conducts research on a given topic. Returns relevant information and sources.",
    parameters=(
        ParamSpec(
            name="query",
            kind="string",
            description="The research query or topic to investigate",
        ),
    ),
    execute=research,
)
