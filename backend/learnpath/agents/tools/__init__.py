"""Storage-backed tools shared by the session and plan generators.

- mastery: pure scoring of one question's history
- catalog: app catalog, starter suggestions, ranked app content
- weak_areas: weak-area report for prompts
- curriculum: curriculum tree with mastery overlay
- progress: recording exercise results
- ai_log: best-effort prompt/response logging
"""

from .catalog import list_app_content, list_learning_apps, suggest_starter_apps
from .curriculum import apps_for_code, get_curriculum
from .mastery import ProgressScore, classify_mastery, score_progress
from .progress import record_question_progress
from .weak_areas import WeakAreaReport, get_weak_area_report

__all__ = [
    "list_app_content",
    "list_learning_apps",
    "suggest_starter_apps",
    "apps_for_code",
    "get_curriculum",
    "ProgressScore",
    "classify_mastery",
    "score_progress",
    "record_question_progress",
    "WeakAreaReport",
    "get_weak_area_report",
]
