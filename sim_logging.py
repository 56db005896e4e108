import logging
import time
from functools import wraps
from typing import Callable, Union

def setup_logger(name: str, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Sets up a logger with a standard format on stderr.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger

def set_level(level: Union[int, str], *names: str) -> None:
    """Change the level of already configured loggers (e.g. from --log-level)."""
    for name in names:
        logging.getLogger(name).setLevel(level)

def log_execution_time(logger: logging.Logger):
    """
    Decorator to measure and log execution time of a function.
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
                elapsed = time.time() - start
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"{func.__name__} executed in {elapsed:.3f}s")
                return result
            except Exception as e:
                logger.error(f"{func.__name__} failed: {e}", exc_info=True)
                raise
        return wrapper
    return decorator
