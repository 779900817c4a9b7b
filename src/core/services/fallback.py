"""Bounded execution and tiered model fallback.

This is the policy layer of the orchestrator: every call to the generative
service goes through `with_deadline`, and plan/category calls go through
`generate_with_fallback`, which walks an ordered tier list and only demotes
on access-class failures (timeout or "not found"/"permission"/"denied"/
"not authorized"). Everything else is a hard stop.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

from core.errors import RequestTimeoutError, classify_error, is_access_error
from core.logging_config import get_logger

T = TypeVar("T")

logger = get_logger("fallback")


def _consume_outcome(future: asyncio.Future) -> None:
    # The abandoned call still finishes in the background; retrieve its
    # outcome so the loop does not report "exception was never retrieved".
    if not future.cancelled():
        future.exception()


async def with_deadline(operation: Awaitable[T], seconds: float) -> T:
    """Await `operation` for at most `seconds`.

    On expiry raises `RequestTimeoutError`. The operation itself is shielded:
    it is not cancelled, the caller simply stops waiting for it.
    """

    future = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(future), timeout=seconds)
    except asyncio.TimeoutError:
        future.add_done_callback(_consume_outcome)
        raise RequestTimeoutError(f"REQUEST_TIMEOUT after {seconds:g}s") from None


async def generate_with_fallback(
    models: Sequence[str],
    request_factory: Callable[[str], Awaitable[T]],
    *,
    timeout_seconds: float,
) -> T:
    """Try `models` strictly in order and return the first success.

    - access-class failure: remember it, move to the next tier
    - any other failure: re-raise immediately
    - all tiers exhausted: re-raise the last access-class failure
    """

    assert models, "tier list must contain at least one model"

    last_error: BaseException | None = None
    for position, model in enumerate(models):
        try:
            return await with_deadline(request_factory(model), timeout_seconds)
        except Exception as exc:
            if not is_access_error(exc):
                raise
            last_error = exc
            remaining = len(models) - position - 1
            logger.warning(
                "model %s unavailable (%s); %s",
                model,
                classify_error(exc).value,
                f"demoting ({remaining} tier(s) left)" if remaining else "no tiers left",
            )

    assert last_error is not None
    raise last_error
