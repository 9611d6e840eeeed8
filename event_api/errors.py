from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError


logger = logging.getLogger(__name__)


class EventAPIError(Exception):
    """Base for errors that map onto an HTTP status and a ``{"error": message}`` body."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EventAPIError):
    status_code = 400


class NotFoundError(EventAPIError):
    status_code = 404


class ConflictError(EventAPIError):
    status_code = 409


class StoreError(EventAPIError):
    status_code = 500


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    """Turn persistence failures into a ``StoreError`` carrying a generic message.

    The underlying exception is logged with its traceback; only ``message`` reaches the client.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("%s: %s", message, exc.__class__.__name__)
        raise StoreError(message) from exc
