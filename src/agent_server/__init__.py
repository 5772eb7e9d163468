"""LangGraph tool-calling agent served over HTTP."""

__version__ = "0.1.0"
