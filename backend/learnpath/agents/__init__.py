"""learnpath generators.

- session: one-shot practice sessions generated from weak areas
- plan: multi-day schedules of existing content
- tools: scoring, catalog, curriculum and progress helpers
"""

from .base import get_llm, get_text_generator

__all__ = [
    "get_llm",
    "get_text_generator",
]
