"""Execution helpers shared by the query and call executors."""
import logging
import time
from functools import wraps
from typing import Any

from templatedb.exceptions import NativeError

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements, bind values and timings."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with statement:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.cn.addcall(elapsed)
            logger.debug(f'Statement time: {elapsed:.4f}s')
    return wrapper


def close_cursor(cursor: Any) -> None:
    """Close a cursor on an error path, keeping the original error in flight."""
    try:
        cursor.close()
    except NativeError as e:
        logger.debug(f'Error closing cursor: {e}')
