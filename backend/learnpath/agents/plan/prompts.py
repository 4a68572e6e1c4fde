"""Prompt templates for plan generation."""

from typing import List

from ..session.prompts import spelling_rule
from .state import Candidate


MIN_TASKS_PER_DAY = 3
MAX_TASKS_PER_DAY = 6

PLAN_SYSTEM_TEMPLATE = """You are an educational AI assistant that schedules practice for school children over several days.

{spelling_rule}

You may ONLY use content items from the candidate list in the user message, referenced by their numeric id.

IMPORTANT: Return ONLY valid JSON matching the following structure. Do not include markdown formatting or other text.
{{
    "title": "string",
    "description": "string",
    "days": [
        {{
            "day": 1,
            "focus": "string (short focus label for the day)",
            "task_ids": [123, 456, 789]
        }}
    ]
}}"""

PLAN_USER_TEMPLATE = """Create a learning plan for the next {days} day(s).

CANDIDATES (id | app | tag | correct/wrong | preview):
{candidates}

Tags: "weak" = the learner struggles with it, "unseen" = never attempted, "review" = already solid.

Rules:
1. Plan exactly {days} day(s) with {min_tasks} to {max_tasks} task ids per day.
2. Prioritise "weak" items, mix in "unseen" items, use "review" items sparingly.
3. Group each day's tasks by app so the learner switches apps rarely.
4. Give every day a short focus label, and the whole plan a motivating title and a one-sentence description."""


def format_candidates(candidates: List[Candidate]) -> str:
    return "\n".join(
        f"- {c.app_content_id} | {c.app_name} | {c.tag} | "
        f"{c.success_count}/{c.failure_count} | {c.preview}"
        for c in candidates
    )


def build_plan_prompts(
    candidates: List[Candidate],
    days: int,
    language_variant: str,
) -> tuple:
    """
    Build the (system, user) instruction pair for one plan.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    system_prompt = PLAN_SYSTEM_TEMPLATE.format(spelling_rule=spelling_rule(language_variant))
    user_prompt = PLAN_USER_TEMPLATE.format(
        days=days,
        candidates=format_candidates(candidates),
        min_tasks=MIN_TASKS_PER_DAY,
        max_tasks=MAX_TASKS_PER_DAY,
    )
    return system_prompt, user_prompt
