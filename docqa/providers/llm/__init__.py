"""LLM provider adapters.

Three implementations of ILLMProvider (docqa/interfaces/llm_provider.py):
    - OpenAILLMProvider    -- gpt-3.5-turbo (or any OpenAI-compatible API)
    - AnthropicLLMProvider -- Claude via the Messages API
    - OllamaLLMProvider    -- local models via an Ollama server

main.py picks the first one with credentials configured
(Anthropic -> OpenAI -> Ollama).
"""

from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.ollama_provider import OllamaLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "AnthropicLLMProvider", "OllamaLLMProvider"]
