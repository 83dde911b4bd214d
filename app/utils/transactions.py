import functools
from flask import current_app
from sqlalchemy.exc import OperationalError
from app.extensions import db

_AFTER_COMMIT_KEY = "after_commit_callbacks"


def after_commit(callback, *args, **kwargs):
    """Run ``callback`` once the surrounding transaction commits; dropped on rollback."""
    db.session.info.setdefault(_AFTER_COMMIT_KEY, []).append((callback, args, kwargs))


def _run_after_commit_callbacks():
    callbacks = db.session.info.pop(_AFTER_COMMIT_KEY, [])
    for callback, args, kwargs in callbacks:
        try:
            callback(*args, **kwargs)
        except Exception as e:
            current_app.logger.error(
                f"After-commit callback {getattr(callback, '__name__', callback)} failed: {e}",
                exc_info=True,
            )


def transactional(func):
    """Run ``func`` in one database transaction: commit on success, roll back on any error.

    Write conflicts surfaced by the store as OperationalError are retried up
    to TRANSACTION_RETRIES times. Business-rule errors propagate untouched.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        retries = current_app.config.get("TRANSACTION_RETRIES", 3)
        attempt = 0
        while True:
            try:
                result = func(*args, **kwargs)
                db.session.commit()
            except OperationalError as e:
                db.session.rollback()
                db.session.info.pop(_AFTER_COMMIT_KEY, None)
                attempt += 1
                if attempt > retries:
                    current_app.logger.error(
                        f"{func.__name__} failed after {retries} retries: {e}"
                    )
                    raise
                current_app.logger.warning(
                    f"Write conflict in {func.__name__}, retrying ({attempt}/{retries}): {e}"
                )
                continue
            except Exception:
                db.session.rollback()
                db.session.info.pop(_AFTER_COMMIT_KEY, None)
                raise
            _run_after_commit_callbacks()
            return result

    return wrapper
