"""
LittleNest Backend: Database Error Translation
================================================

What:  A context manager that turns SQLAlchemy failures into application
       exceptions.
How:   IntegrityError (unique index hit) becomes DuplicateKeyError (409);
       any other SQLAlchemyError becomes DatabaseError (500). Application
       exceptions raised inside the block pass through untouched.
Who:   Wrapped around every query in NameService and BlogService.

Usage:
    with translate_db_errors("update the name", duplicate_message="Name already exists"):
        await db.flush()
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from littlenest.exceptions import DatabaseError, DuplicateKeyError, LittleNestError

logger = logging.getLogger(__name__)


@contextmanager
def translate_db_errors(
    action: str,
    duplicate_message: Optional[str] = None,
    **context,
) -> Iterator[None]:
    try:
        yield
    except LittleNestError:
        raise
    except IntegrityError as e:
        logger.warning("Unique constraint hit while trying to %s: %s", action, e.orig)
        raise DuplicateKeyError(
            message=duplicate_message or "Resource already exists",
            context=context,
        ) from e
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={"error_type": type(e).__name__, **context},
        ) from e
