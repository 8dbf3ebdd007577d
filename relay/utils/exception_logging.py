"""
Exception logging helpers that never raise, so a broken exception object or
logger cannot take down request handling.
"""

import logging


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ or __repr__ might fail.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception: Exception) -> str:
    """
    Describe an exception for a client-facing error body.

    Transport errors raised through anyio task groups arrive as exception
    groups; their sub-exceptions are listed after the main message.
    """
    try:
        if exception is None:
            return "None"
        main_str = _safe_str(exception)
        if not main_str:
            main_str = type(exception).__name__
        subs = _sub_exceptions(exception)
        if not subs:
            return main_str
        joined = "; ".join(f"{type(s).__name__}: {_safe_str(s)}" for s in subs)
        return f"{main_str} (Sub-exceptions: {joined})"
    except Exception:
        return "<exception (all formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, including each sub-exception of an exception group.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        subs = _sub_exceptions(exception)
        if subs:
            logger.log(
                level,
                f"{safe_prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
            )
            for i, sub_exc in enumerate(subs):
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i+1}: {type(sub_exc).__name__}: {_safe_str(sub_exc)}",
                    exc_info=sub_exc,
                )
        else:
            logger.log(
                level,
                f"{safe_prefix} Exception: {_safe_str(exception)}",
                exc_info=exception if exception is not None else False,
            )
    except Exception:
        # Logging must not affect request handling
        try:
            logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            pass
