"""
Decorators for audit logging and performance monitoring.
Applied at the engine facade and processing layer; the pure calculation
functions underneath stay free of logging.
"""
import functools
import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable

# Configure audit logger separately from main app logger
audit_logger = logging.getLogger('findoc.audit')
perf_logger = logging.getLogger('findoc.performance')


def _reference(args, kwargs) -> str:
    """Best-effort document reference for log lines"""
    if 'reference' in kwargs and kwargs['reference']:
        return str(kwargs['reference'])
    for arg in args[1:2]:
        if hasattr(arg, 'invoice_number'):
            return arg.invoice_number
    return 'N/A'


def _outcome(result: Any) -> str:
    if hasattr(result, 'grand_total'):
        return f'grand_total={result.grand_total}'
    if hasattr(result, 'score'):
        return f'score={result.score}'
    if hasattr(result, 'is_valid'):
        return 'VALID' if result.is_valid else 'INVALID'
    if hasattr(result, 'insight'):
        return f'risk={result.insight.risk_level.value}'
    return 'PROCESSED'


def audit_log(func: Callable) -> Callable:
    """
    Decorator that logs calls and their outcome.
    Failures are logged and re-raised unchanged.

    Usage:
        @audit_log
        def compute_totals(self, lines, invoice_discount):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        func_name = func.__qualname__
        reference = _reference(args, kwargs)

        audit_logger.info(
            f"CALL | {func_name} | Ref: {reference} | "
            f"Timestamp: {datetime.now().isoformat()}"
        )

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            audit_logger.error(
                f"FAILURE | {func_name} | Ref: {reference} | "
                f"Error: {str(e)}"
            )
            raise

        audit_logger.info(
            f"SUCCESS | {func_name} | Ref: {reference} | "
            f"Outcome: {_outcome(result)}"
        )
        return result

    return wrapper


def measure_performance(func: Callable) -> Callable:
    """
    Decorator to measure and log function execution time.

    Usage:
        @measure_performance
        def process_directory(self, directory):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            perf_logger.warning(
                f"{func.__qualname__} failed after {elapsed_ms:.2f}ms: {str(e)}"
            )
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        # Attach timing to result if possible
        if hasattr(result, 'processing_time_ms'):
            result.processing_time_ms = elapsed_ms

        perf_logger.debug(
            f"{func.__qualname__} completed in {elapsed_ms:.2f}ms"
        )
        return result

    return wrapper


@contextmanager
def performance_context(operation_name: str):
    """
    Context manager for measuring code block performance.

    Usage:
        with performance_context("aging classification"):
            classify_receivables_aging(invoices, now)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.debug(f"{operation_name}: {elapsed:.2f}ms")
