"""
Notifier hooks for the message center.

The dispatcher reports two kinds of events while fanning a publish out: a
listener (or its result validator) failing, and a listener running longer
than its declared timeout. Both go through replaceable hooks. The defaults
below only log. User supplied hooks are wrapped with try_catch_log() so a
failing hook is logged and never reaches the dispatcher.
"""

import functools
import inspect
import logging
from typing import Any
from typing import Callable
from typing import Optional


logger = logging.getLogger(__name__)


ERROR_HOOK = Callable[[BaseException, str, Any, str], Any]
"""
Signature for error hooks.

Receives the captured exception, the message name, the published data and
the type whose listener failed.
"""

TIMEOUT_HOOK = Callable[[int, str, Any, str], Any]
"""
Signature for timeout hooks.

Receives the elapsed milliseconds, the message name, the published data and
the type whose listener was slow.
"""

ERROR = "error"
TIMEOUT = "timeout"


def get_callable_name(callable_: Callable) -> str:
    """
    Returns the name of the callable, using class name for items with __self__,
    __name__ for anything with __name__, or str(callback) if neither are found.
    """
    if hasattr(callable_, "__self__"):
        return f"{callable_.__self__.__class__.__name__}.{callable_.__name__}"
    elif hasattr(callable_, "__name__"):
        return callable_.__name__
    else:
        return str(callable_)


# -----Default Hooks-----------------------------------------------------------


def log_listener_error(
    exception: BaseException, name: str, data: Any, type_: str
) -> None:
    """Log a listener failure with its traceback."""
    logger.error(
        f"Exception in message listener:\n"
        f"  Message:   {name}\n"
        f"  Type:      {type_}\n"
        f"  Data:      {data!r}\n"
        f"  Exception: {exception.__class__.__name__}: {exception}",
        exc_info=(type(exception), exception, exception.__traceback__),
    )


def log_listener_timeout(elapsed_ms: int, name: str, data: Any, type_: str) -> None:
    """Log a listener that overran its declared timeout."""
    logger.info(f"Slow message listener: {name}::{type_} took {elapsed_ms}ms")


DEFAULT_HOOKS: dict[str, Callable] = {
    ERROR: log_listener_error,
    TIMEOUT: log_listener_timeout,
}


# -----Safe Invoke-------------------------------------------------------------


def try_catch_log(
    fn: Callable, log: Optional[Callable[..., None]] = None
) -> Callable:
    """
    Wrap fn so any exception it raises is logged instead of propagated.

    Coroutine functions get an async wrapper that catches while awaiting.
    The wrapper keeps fn's signature and returns None when fn failed.

    Args:
        fn (Callable): The function to protect.
        log (Callable): Receives a message and the exception. Defaults to
            logging at ERROR on this module's logger.
    """
    if log is None:
        log = _log_hook_failure

    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                log(f"Hook '{get_callable_name(fn)}' failed", e)
                return None

        return async_wrapper

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            log(f"Hook '{get_callable_name(fn)}' failed", e)
            return None

        if inspect.isawaitable(result):
            return _guard_awaitable(fn, result, log)

        return result

    return wrapper


async def _guard_awaitable(fn: Callable, awaitable: Any, log: Callable) -> Any:
    try:
        return await awaitable
    except Exception as e:
        log(f"Hook '{get_callable_name(fn)}' failed", e)
        return None


def _log_hook_failure(message: str, exception: BaseException) -> None:
    logger.error(
        f"{message}: {exception.__class__.__name__}: {exception}",
        exc_info=(type(exception), exception, exception.__traceback__),
    )
