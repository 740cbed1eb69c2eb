"""LLM providers: OpenAI, Anthropic, Ollama."""

from finrag.llm.base import LLMProvider
from finrag.llm.factory import available_providers, get_llm_provider

__all__ = ["LLMProvider", "available_providers", "get_llm_provider"]
