"""Concurrent upstream calls for page handlers."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from common.base.logging_config import get_logger

logger = get_logger(__name__)

MAX_WORKERS = 8


def gather(calls: Dict[str, Callable[[], Any]], fallbacks: Optional[Dict[str, Any]] = None,
           max_workers: Optional[int] = None) -> Dict[str, Any]:
    """
    Run independent upstream calls concurrently.

    A call that fails and has an entry in ``fallbacks`` yields that value
    instead. Any other failure is raised once every call has finished; when
    several fail, the first one in ``calls`` order wins.

    :param calls: Zero-argument callables keyed by result name
    :param fallbacks: Values to use for calls that are allowed to fail
    :param max_workers: Thread pool size, defaults to one per call up to MAX_WORKERS
    :return: Results keyed like ``calls``
    """
    fallbacks = fallbacks or {}
    if not calls:
        return {}

    workers = max_workers or min(len(calls), MAX_WORKERS)
    results: Dict[str, Any] = {}
    first_error: Optional[BaseException] = None

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {name: executor.submit(func) for name, func in calls.items()}
        for name, future in futures.items():
            try:
                results[name] = future.result()
            except Exception as e:
                if name in fallbacks:
                    logger.warning(f"Upstream call '{name}' failed, using fallback: {e}")
                    results[name] = fallbacks[name]
                    continue
                logger.error(f"Upstream call '{name}' failed: {e}")
                if first_error is None:
                    first_error = e

    if first_error is not None:
        raise first_error
    return results
