"""Response helpers shared by the routers."""

import logging
from typing import Any, NoReturn, Optional

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder

from ..core.errors import LearnpathError
from ..core.text import replace_eszett

logger = logging.getLogger(__name__)

LANGUAGE_FORMAT_SWISS = "swiss"


def localized(payload: Any, language_format: Optional[str] = None) -> Any:
    """JSON-ready payload, with "ß" spelled "ss" for ``language-format=swiss``."""
    data = jsonable_encoder(payload)
    if language_format == LANGUAGE_FORMAT_SWISS:
        return replace_eszett(data)
    return data


def raise_http(exc: LearnpathError) -> NoReturn:
    """Translate a domain error into an HTTPException."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__}: {exc.message}")
    raise HTTPException(
        status_code=exc.status_code,
        detail={"error": exc.message, "hint": exc.hint},
    ) from exc
