import logging
import time
from functools import wraps
from typing import Callable, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logger(name: str, level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attaches a stream handler, and a file handler when log_file is given,
    to the named logger. Repeated calls for the same name add nothing.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger

def log_execution_time(logger: logging.Logger, stage: Optional[str] = None):
    """
    Decorator for pipeline stages: wall time at DEBUG, failures at ERROR.
    """
    def decorator(func: Callable):
        label = stage or func.__qualname__

        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - start
                logger.error(f"{label} failed after {elapsed:.3f}s: {e}", exc_info=True)
                raise
            logger.debug(f"{label} finished in {time.perf_counter() - start:.3f}s")
            return result
        return wrapper
    return decorator
