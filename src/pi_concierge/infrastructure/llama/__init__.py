"""llama.cpp completion backend."""

from .client import LlamaCompletionClient

__all__ = ["LlamaCompletionClient"]
