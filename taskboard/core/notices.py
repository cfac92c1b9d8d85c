"""Turn store failures into user-visible notices."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from taskboard.core.exceptions import ServiceUnavailableError
from taskboard.localization.helpers import get_translation

logger = logging.getLogger(__name__)


@contextmanager
def notice_on_failure(notice_key: str, locale: str = "en") -> Iterator[None]:
    """Log a failed store write and re-raise it as a localized 503 notice.

    Nothing is retried; the caller decides whether to try again.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store write failed (%s): %s", notice_key, exc, exc_info=True)
        raise ServiceUnavailableError(get_translation(notice_key, locale)) from exc
