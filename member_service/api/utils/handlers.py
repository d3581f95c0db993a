"""Wrapping of async route handlers.

Wrapped handlers log failures together with the handler that raised them
and re-raise, leaving the response to the registered exception handlers.
"""

import functools
import inspect
from collections.abc import Awaitable, Callable
from types import ModuleType
from typing import Any

from loguru import logger

from member_service.core.exceptions import MemberServiceError

_WRAPPED_MARKER = "__member_service_wrapped__"


def wrap_handler[**P, R](
    fn: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Log any exception escaping ``fn`` with its handler name, then re-raise.

    The wrapper keeps the signature of ``fn`` so FastAPI still resolves its
    parameters and dependencies.
    """
    if getattr(fn, _WRAPPED_MARKER, False):
        return fn

    handler_name = f"{fn.__module__}.{fn.__qualname__}"

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except MemberServiceError as exc:
            log = logger.warning if exc.is_expected else logger.error
            log(
                "Handler {} failed with {}: {}",
                handler_name,
                exc.error_code,
                exc.message,
            )
            raise
        except Exception as exc:
            logger.error(
                "Handler {} failed with unexpected {}", handler_name, type(exc).__name__
            )
            raise

    setattr(wrapper, _WRAPPED_MARKER, True)
    return wrapper


def auto_wrap(obj: Any) -> Any:  # noqa: ANN401 - handlers come in any container
    """Wrap every coroutine function found in ``obj``.

    Lists and tuples are walked element-wise and dicts value-wise, returning
    new containers; modules have their coroutine functions replaced in
    place. Sync callables and other values are returned unchanged.
    """
    if isinstance(obj, list | tuple):
        return type(obj)(auto_wrap(item) for item in obj)
    if isinstance(obj, dict):
        return {key: auto_wrap(value) for key, value in obj.items()}
    if isinstance(obj, ModuleType):
        for name, value in list(vars(obj).items()):
            if inspect.iscoroutinefunction(value) and value.__module__ == obj.__name__:
                setattr(obj, name, wrap_handler(value))
        return obj
    if inspect.iscoroutinefunction(obj):
        return wrap_handler(obj)
    return obj
