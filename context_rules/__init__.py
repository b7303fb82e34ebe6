"""Rule resolution and attribution engine for LLM context files."""

__version__ = "0.1.0"
