"""
SDK for menugen.

Provider access and the generation client used by the pipeline.
"""

from .openai_client import CompletionRequest, Completion, GenerationClient, OpenAIProvider, TextProvider

__all__ = ["CompletionRequest", "Completion", "GenerationClient", "OpenAIProvider", "TextProvider"]
