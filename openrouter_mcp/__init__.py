"""MCP server exposing OpenRouter models as tools and resources."""

__version__ = "1.0.0"
