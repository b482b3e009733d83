"""
Operation logging wrapped around service functions.

``@logged("PostService", "find by id")`` logs the start of the call with
the scalar arguments it was given (ids, statuses), logs completion at
DEBUG, and on failure logs once and re-raises the original exception.
Domain errors (conflicts, bad references) are expected outcomes and go
out at WARNING; anything else is logged with its traceback.
"""
import enum
import functools
import inspect
import logging
import time

from blog_api.errors import BlogError

_SCALARS = (int, str, bool, float, enum.Enum)


def _describe_arguments(signature: inspect.Signature, args, kwargs) -> str:
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return ""
    parts = []
    for name, value in bound.arguments.items():
        if isinstance(value, enum.Enum):
            parts.append(f"{name}={value.value}")
        elif isinstance(value, _SCALARS):
            parts.append(f"{name}={value!r}")
    return ", ".join(parts)


def logged(service: str, operation: str):
    def decorator(func):
        logger = logging.getLogger(func.__module__)
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            context = _describe_arguments(signature, args, kwargs)
            logger.info("%s: %s%s", service, operation, f" ({context})" if context else "")
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except BlogError as exc:
                logger.warning("%s: %s failed - %s", service, operation, exc)
                raise
            except Exception:
                logger.exception("%s: %s failed", service, operation)
                raise
            logger.debug(
                "%s: %s completed in %.1f ms",
                service,
                operation,
                (time.perf_counter() - start) * 1000,
            )
            return result

        return wrapper

    return decorator
