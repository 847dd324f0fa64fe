"""Logging decorators and context managers for conversion steps.

Both helpers log a START/SUCCESS/ERROR triple at DEBUG level with the current
run ID and record an OperationMetrics entry for the step. Outside a conversion
they open a run ID of their own and drop it again when the step ends. Failures
are reported to the user once, by the converter.
"""

import functools
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional

from .correlation import CorrelationContext
from .metrics import OperationMetrics, create_operation_metrics, get_metrics_collector


def _sanitize_args(args: tuple, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Render call arguments compactly for a log line.

    Paths are logged as strings, anything long is cut at 200 characters.
    """
    def render(value: Any) -> str:
        text = str(value) if isinstance(value, Path) else repr(value)
        if len(text) > 200:
            text = text[:200] + "..."
        return text

    sanitized: Dict[str, Any] = {}
    for i, arg in enumerate(args[:3]):
        sanitized[f"arg_{i}"] = render(arg)
    for key, value in list(kwargs.items())[:5]:
        sanitized[key] = render(value)
    return sanitized


def log_operation(operation_name: str, log_args: bool = True) -> Callable:
    """Decorator that logs and times a function as one named operation.

    Args:
        operation_name: Name of the operation being logged
        log_args: Whether to include the call arguments in the START line

    Returns:
        Decorated function with logging
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            correlation_id = CorrelationContext.get_correlation_id()
            if correlation_id is None:
                # standalone call, the run ID lives only as long as the call
                with CorrelationContext():
                    return wrapper(*args, **kwargs)

            logger = logging.getLogger(func.__module__)
            metrics = create_operation_metrics(operation_name, correlation_id)

            start_data: Dict[str, Any] = {
                "operation": operation_name,
                "status": "START",
                "run_id": correlation_id,
            }
            if log_args:
                # skip bound instance
                call_args = args[1:] if args and hasattr(args[0], func.__name__) else args
                start_data["args"] = _sanitize_args(call_args, kwargs)
            logger.debug(f"{operation_name} started", extra={"structured": start_data})

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                metrics.complete(success=False, error_type=type(e).__name__)
                get_metrics_collector().record_operation(metrics)
                logger.debug(
                    f"{operation_name} failed after {metrics.duration_ms:.1f}ms: {e}",
                    extra={"structured": {
                        "operation": operation_name,
                        "status": "ERROR",
                        "run_id": correlation_id,
                        "error_type": type(e).__name__,
                        "duration_ms": metrics.duration_ms,
                    }}
                )
                raise

            metrics.complete(success=True)
            get_metrics_collector().record_operation(metrics)
            logger.debug(
                f"{operation_name} completed in {metrics.duration_ms:.1f}ms",
                extra={"structured": {
                    "operation": operation_name,
                    "status": "SUCCESS",
                    "run_id": correlation_id,
                    "duration_ms": metrics.duration_ms,
                }}
            )
            return result

        return wrapper
    return decorator


@contextmanager
def operation_context(
    operation_name: str,
    logger: Optional[logging.Logger] = None,
    **metadata: Any
) -> Generator[OperationMetrics, None, None]:
    """Context manager for operation tracking with logging and metrics.

    Args:
        operation_name: Name of the operation
        logger: Logger (or adapter) to use; defaults to this module's logger
        **metadata: Additional metadata recorded on the metrics and START line

    Yields:
        OperationMetrics instance for the operation
    """
    if CorrelationContext.get_correlation_id() is None:
        with CorrelationContext(), operation_context(operation_name, logger, **metadata) as metrics:
            yield metrics
        return

    if logger is None:
        logger = logging.getLogger(__name__)

    correlation_id = CorrelationContext.get_correlation_id()
    metrics = create_operation_metrics(operation_name, correlation_id)
    for key, value in metadata.items():
        metrics.add_metadata(key, value)

    logger.debug(
        f"{operation_name} started",
        extra={"structured": {
            "operation": operation_name,
            "status": "START",
            "run_id": correlation_id,
            **{key: str(value) for key, value in metadata.items()}
        }}
    )

    try:
        yield metrics
    except Exception as e:
        metrics.complete(success=False, error_type=type(e).__name__)
        get_metrics_collector().record_operation(metrics)
        logger.debug(
            f"{operation_name} failed: {e}",
            extra={"structured": {
                "operation": operation_name,
                "status": "ERROR",
                "run_id": correlation_id,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "duration_ms": metrics.duration_ms,
            }}
        )
        raise

    metrics.complete(success=True)
    get_metrics_collector().record_operation(metrics)
    logger.debug(
        f"{operation_name} completed in {metrics.duration_ms:.1f}ms",
        extra={"structured": {
            "operation": operation_name,
            "status": "SUCCESS",
            "run_id": correlation_id,
            "duration_ms": metrics.duration_ms,
        }}
    )
