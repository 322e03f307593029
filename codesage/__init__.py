"""Code documentation, semantic search and commit review with Ollama models."""

__version__ = "0.1.0"