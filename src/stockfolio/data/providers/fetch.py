"""
Bounded quote fetching.

Runs a provider call on a worker thread and waits at most a fixed timeout,
so a slow or failing quote source never blocks analytics.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Iterable, Optional

from stockfolio.models import Quote
from stockfolio.data.providers.base import (
    QuoteProvider,
    QuoteProviderError,
    QuoteTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def fetch_quotes(
    provider: QuoteProvider,
    symbols: Optional[Iterable[str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Quote]:
    """
    Fetch current quotes keyed by symbol.

    Args:
        provider: Quote source
        symbols: Restrict the result to these symbols (None = everything)
        timeout: Seconds to wait for the provider

    Returns:
        Dictionary mapping symbol -> Quote; empty on timeout or failure
    """
    wanted = None
    if symbols is not None:
        wanted = {s.strip().upper() for s in symbols}
        provider.track(sorted(wanted))

    # Not joined on exit: an in-flight fetch keeps running after a timeout
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="quote-fetch")
    try:
        future = executor.submit(provider.get_all)
        try:
            quotes = _wait_for_quotes(future, provider, timeout)
        except QuoteProviderError as e:
            logger.warning(
                f"Quote fetch from {provider.name} failed ({type(e).__name__}): {e}; "
                "valuing at cost"
            )
            return {}
        except Exception as e:
            logger.warning(
                f"Unexpected error fetching quotes from {provider.name}: {e!r}; valuing at cost"
            )
            return {}
    finally:
        executor.shutdown(wait=False)

    result = {}
    for quote in quotes:
        if wanted is None or quote.symbol in wanted:
            result[quote.symbol] = quote
    return result


def _wait_for_quotes(future: Future, provider: QuoteProvider, timeout: float) -> list[Quote]:
    """
    Wait for a submitted provider call.

    Raises:
        QuoteTimeoutError: If the provider does not answer within timeout
    """
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        raise QuoteTimeoutError(f"{provider.name} did not answer within {timeout}s")
