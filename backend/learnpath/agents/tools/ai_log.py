"""Generator calls and best-effort logging of their prompts and responses."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ...core.errors import LearnpathError, ProviderError
from ...db.base import get_session
from ...db.models import AiLog
from ..base.llm import TextGenerator, is_llm_connection_error, is_llm_quota_error

logger = logging.getLogger(__name__)

FAILED_PREFIX = "FAILED_"


def failed_attempt_id() -> str:
    """Log id for a call that produced no session or plan."""
    return f"{FAILED_PREFIX}{int(datetime.now(timezone.utc).timestamp() * 1000)}"


async def log_ai_interaction(
    user_uid: str,
    session_id: Optional[str],
    prompt: str,
    system_prompt: str,
    response: str,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> None:
    """
    Store one prompt/response pair.

    Storage failures are logged and swallowed; the caller's result never
    depends on this write.
    """
    try:
        async with get_session() as session:
            async with session.begin():
                session.add(AiLog(
                    user_uid=user_uid,
                    session_id=session_id,
                    prompt=prompt,
                    system_prompt=system_prompt,
                    response=response,
                    provider=provider,
                    model=model,
                ))
    except SQLAlchemyError as e:
        logger.warning(f"Failed to log AI interaction for {user_uid}: {e}")


async def call_generator(
    generator: TextGenerator,
    user_uid: str,
    system_prompt: str,
    user_prompt: str,
    *,
    purpose: str,
) -> str:
    """
    Invoke the generator once, without retries.

    Raises:
        ProviderError: the call failed or timed out; the attempt is logged
            under a ``FAILED_<ms>`` id
    """
    try:
        return await generator.generate(
            system_prompt,
            user_prompt,
            user_uid=user_uid,
            purpose=purpose,
        )
    except LearnpathError:
        raise
    except Exception as e:
        logger.error(f"[{purpose}] generation failed for {user_uid}: {e}")
        await log_ai_interaction(
            user_uid,
            failed_attempt_id(),
            user_prompt,
            system_prompt,
            f"ERROR: {e}",
            provider=generator.provider,
            model=generator.model,
        )
        raise ProviderError(
            f"AI Provider Error: {e}",
            unavailable=is_llm_quota_error(e) or is_llm_connection_error(e),
        ) from e
