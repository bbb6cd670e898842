"""Ollama model adapter.

This package provides the async adapter that streams model responses from the
Ollama API as normalized text and function-call chunks.
"""

from parley_server.ollama.client import OllamaClient
from parley_server.ollama.types import FunctionCall, GenerationConfig, NormalizedChunk

__all__ = ["OllamaClient", "FunctionCall", "GenerationConfig", "NormalizedChunk"]
