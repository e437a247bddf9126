# bulk.py
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from models import VerificationOutcome, VerificationResult

logger = logging.getLogger(__name__)

VerifyFn = Callable[[str], Awaitable[VerificationResult]]


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def dispatch(
    addresses: Sequence[str],
    verify: VerifyFn,
    timeout: Optional[float] = None,
) -> List[VerificationOutcome]:
    """
    Verify every address concurrently and return one outcome per address.

    Outcomes are in completion order. A failing or timed-out address is
    recorded as an error and never affects the others. Returns only once
    every verification has finished.
    """
    outcomes: List[VerificationOutcome] = []
    lock = asyncio.Lock()

    async def attempt(email: str) -> VerificationOutcome:
        try:
            result = await verify(email)
        except Exception as e:
            logger.warning("verification of %s failed: %s", email, e)
            return VerificationOutcome(email=email, error=_describe(e))
        return VerificationOutcome(email=email, result=result)

    async def one(email: str) -> None:
        # a TimeoutError leaving wait_for can only be the deadline; attempt() catches the verifier's own
        if timeout is None:
            outcome = await attempt(email)
        else:
            try:
                outcome = await asyncio.wait_for(attempt(email), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("verification of %s timed out after %ss", email, timeout)
                outcome = VerificationOutcome(email=email, error=f"verification timed out after {timeout:g}s")

        async with lock:
            outcomes.append(outcome)

    await asyncio.gather(*(one(e) for e in addresses))
    logger.info("bulk verification finished: %d addresses, %d errors",
                len(outcomes), sum(o.error is not None for o in outcomes))
    return outcomes
