#!/usr/bin/env python3
"""
Portfolio Utilities - Shared helper functions and decorators.
"""

import time
from functools import wraps

import requests


RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


def is_transient_error(error: Exception) -> bool:
    """Timeouts, dropped connections and throttling/gateway responses."""
    if isinstance(error, (requests.Timeout, requests.ConnectionError)):
        return True
    if isinstance(error, requests.HTTPError):
        response = error.response
        return response is not None and response.status_code in RETRYABLE_STATUS_CODES
    return False


def retry_with_backoff(max_retries=3, initial_delay=1.0, backoff_factor=2.0):
    """
    Decorator to retry remote fetches with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay between retries
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e
                    if not is_transient_error(e) or attempt == max_retries:
                        raise

                    print(f"  Fetch error (attempt {attempt + 1}/{max_retries + 1}): {e}")
                    print(f"  Retrying in {delay:.1f}s...")
                    time.sleep(delay)
                    delay *= backoff_factor

            raise last_exception
        return wrapper
    return decorator


def format_bytes(num_bytes: float) -> str:
    """Human readable size, e.g. 1.25 MB."""
    size = float(num_bytes)
    for unit in ('B', 'KB', 'MB'):
        if abs(size) < 1024:
            return f"{size:.2f} {unit}" if unit != 'B' else f"{int(size)} B"
        size /= 1024
    return f"{size:.2f} GB"
