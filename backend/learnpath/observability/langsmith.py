"""LangSmith tracing setup and the runnable config used for generator calls."""

import logging
import os
from typing import Any, Dict, Iterable, Optional

from ..core.config import Settings

logger = logging.getLogger(__name__)


def initialize_langsmith(settings: Settings) -> bool:
    """
    Export LangSmith settings to the environment read by LangChain.

    Returns:
        True when tracing is requested and an API key is present.
    """
    tracing_enabled = bool(settings.LANGSMITH_TRACING) and bool(settings.LANGSMITH_API_KEY.strip())

    exported = {
        "LANGSMITH_TRACING": "true" if tracing_enabled else "false",
        "LANGCHAIN_TRACING_V2": "true" if tracing_enabled else "false",
    }
    if tracing_enabled:
        exported.update(
            LANGSMITH_API_KEY=settings.LANGSMITH_API_KEY,
            LANGSMITH_ENDPOINT=settings.LANGSMITH_ENDPOINT,
            LANGSMITH_PROJECT=settings.LANGSMITH_PROJECT,
        )
        if settings.LANGSMITH_WORKSPACE_ID:
            exported["LANGSMITH_WORKSPACE_ID"] = settings.LANGSMITH_WORKSPACE_ID
    os.environ.update(exported)

    if tracing_enabled:
        logger.info(
            "LangSmith tracing enabled (project=%s, endpoint=%s)",
            settings.LANGSMITH_PROJECT,
            settings.LANGSMITH_ENDPOINT,
        )
    else:
        logger.info("LangSmith tracing disabled")

    return tracing_enabled


def build_trace_config(
    thread_id: str,
    tags: Optional[Iterable[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a LangChain runnable config carrying tags and metadata for one call."""
    config: Dict[str, Any] = {
        "configurable": {"thread_id": thread_id},
        "run_name": thread_id.split(":", 1)[0],
    }
    if tags:
        config["tags"] = list(tags)
    if metadata:
        config["metadata"] = dict(metadata)
    return config
