"""LLM access."""

from .client import Completion, CompletionClient, LLMClient
from .openrouter import get_llm

__all__ = ["Completion", "CompletionClient", "LLMClient", "get_llm"]
