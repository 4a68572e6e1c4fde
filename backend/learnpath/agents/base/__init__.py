"""Base infrastructure shared by the generators."""

from .llm import LlmTextGenerator, TextGenerator, get_llm, get_text_generator

__all__ = [
    "LlmTextGenerator",
    "TextGenerator",
    "get_llm",
    "get_text_generator",
]
