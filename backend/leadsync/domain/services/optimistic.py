"""
Optimistic Updates
Apply a local change, commit it remotely, restore the snapshot on failure
"""
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


async def with_optimistic_update(
    snapshot: Callable[[], S],
    apply: Callable[[], None],
    commit: Callable[[], Awaitable[R]],
    revert: Callable[[S], None],
) -> R:
    """
    Run ``commit`` with ``apply`` already visible locally.

    The state captured by ``snapshot`` before ``apply`` is always handed to
    ``revert`` when ``commit`` raises; the original exception propagates.
    """
    previous = snapshot()
    apply()
    try:
        return await commit()
    except Exception:
        logger.warning("Commit failed, restoring previous state")
        revert(previous)
        raise
