"""Prompt templates for session generation."""

from typing import List

from ..tools.catalog import AppSummary
from ..tools.weak_areas import WeakAreaReport


# =============================================================================
# SPELLING
# =============================================================================

SWISS_SPELLING_RULE = (
    "Write all German text in Swiss Standard German: never use the letter "
    "\"ß\", always write \"ss\" instead (e.g. \"Strasse\", \"gross\")."
)

STANDARD_SPELLING_RULE = (
    "Write all German text in standard German orthography, using \"ß\" "
    "where the spelling rules require it."
)


def spelling_rule(language_variant: str) -> str:
    if language_variant == "standard":
        return STANDARD_SPELLING_RULE
    return SWISS_SPELLING_RULE


# =============================================================================
# SESSION GENERATION
# =============================================================================

SESSION_SYSTEM_TEMPLATE = """You are an educational AI assistant that builds short personalized practice sessions for school children.

{spelling_rule}

Available Apps:
{available_apps}

IMPORTANT: Return ONLY valid JSON matching the following structure. Do not include markdown formatting or other text.
{{
    "topic": "string",
    "text": "string",
    "theory": [
        {{
            "title": "string",
            "content": "string (markdown allowed)"
        }}
    ],
    "tasks": [
        {{
            "app_id": "string (must be one of the IDs above)",
            "content": {{ ... object matching the app's Target Structure ... }}
        }}
    ]
}}"""

SESSION_USER_TEMPLATE = """Analyze the following learner performance:

PERFORMANCE PER APP:
{performance_summary}

WEAKEST QUESTIONS:
{weak_items}

Based on this analysis, create a personalized learning session with {min_tasks} to {max_tasks} tasks.
Choose the most appropriate apps from the available list, focusing on the weak areas above.
For each task, generate SPECIFIC new content that follows the app's Target Structure exactly.
Create a motivating header (topic) and a short explanation (text).
ADDITIONALLY, provide a list of "theory" cards that explain the concepts used in the tasks. These should be short, helpful explanations or rules."""

MIN_SESSION_TASKS = 3
MAX_SESSION_TASKS = 5


def format_available_apps(apps: List[AppSummary]) -> str:
    if not apps:
        return "(none)"
    return "\n".join(
        f"- ID: {app.id}, Name: {app.name}, Description: {app.description or ''}, "
        f"Target Structure JSON Schema: {app.data_structure or '{}'}"
        for app in apps
    )


def build_session_prompts(
    report: WeakAreaReport,
    apps: List[AppSummary],
    language_variant: str,
) -> tuple:
    """
    Build the (system, user) instruction pair for one session.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    system_prompt = SESSION_SYSTEM_TEMPLATE.format(
        spelling_rule=spelling_rule(language_variant),
        available_apps=format_available_apps(apps),
    )
    user_prompt = SESSION_USER_TEMPLATE.format(
        performance_summary=report.summary_text(),
        weak_items=report.weak_items_text(),
        min_tasks=MIN_SESSION_TASKS,
        max_tasks=MAX_SESSION_TASKS,
    )
    return system_prompt, user_prompt
