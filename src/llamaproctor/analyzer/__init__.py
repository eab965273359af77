"""Activity analyzer module for llamaproctor.

Provides a provider-agnostic interface for sending screen captures to
vision-language models and receiving a task-relevance observation.

Public API:
    ActivityAnalyzer -- Abstract base class
    AnalysisError -- Raised on API or parsing failures
    OpenAIAnalyzer -- Llama API / OpenAI / OpenRouter implementation
    AnthropicAnalyzer -- Claude API implementation
"""

from llamaproctor.analyzer.base import ActivityAnalyzer, AnalysisError

__all__ = ["ActivityAnalyzer", "AnalysisError", "AnthropicAnalyzer", "OpenAIAnalyzer"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "AnthropicAnalyzer":
        from llamaproctor.analyzer.anthropic import AnthropicAnalyzer
        return AnthropicAnalyzer
    if name == "OpenAIAnalyzer":
        from llamaproctor.analyzer.openai import OpenAIAnalyzer
        return OpenAIAnalyzer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
