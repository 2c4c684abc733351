import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from mealprep.core.errors import ConflictError, DomainError, TransientError

logger = logging.getLogger(__name__)

_DEPTH_KEY = "unit_of_work_depth"


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Run one transactional unit of work.

    The outermost unit commits on a clean exit and rolls back on any exception,
    including taxonomy errors raised mid-sequence (e.g. "plan not found" after
    other plans were already deactivated). Nested units join the outer one and
    only flush, so store helpers can be composed into a single transaction.

    Driver errors are translated at this boundary: integrity failures become
    ConflictError, anything else from the DBAPI becomes TransientError.
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
        else:
            db.flush()
    except DomainError:
        if depth == 0:
            db.rollback()
        raise
    except IntegrityError as exc:
        if depth == 0:
            db.rollback()
            logger.warning(f"Integrity error, transaction rolled back: {exc.orig}")
            raise ConflictError(
                "The change conflicts with existing data", errors=[]
            ) from exc
        raise
    except DBAPIError as exc:
        if depth == 0:
            db.rollback()
            logger.error(f"Database error, transaction rolled back: {exc.orig}")
            raise TransientError("The database is temporarily unavailable") from exc
        raise
    except Exception:
        if depth == 0:
            db.rollback()
            logger.exception("Unexpected error, transaction rolled back")
        raise
    finally:
        db.info[_DEPTH_KEY] = depth
