"""Shared scanner behaviour: logger binding and scan deadlines."""

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

from pydantic import BaseModel

from reconscan.core.interfaces import IScanner
from reconscan.core.logging import get_logger

TResult = TypeVar("TResult", bound=BaseModel)


class BaseScanner(IScanner[TResult], Generic[TResult]):
    """Base class for all scanner implementations."""

    def __init__(self) -> None:
        self.logger = get_logger(self.name)

    def get_capabilities(self) -> list[str]:
        return []

    async def _run_with_deadline(
        self,
        body: Callable[[], Awaitable[None]],
        deadline: float,
        target: str | None = None,
    ) -> bool:
        """Run a scan body under a deadline in seconds.

        The body appends to its own result list as it goes, so whatever it
        collected before expiry is kept. Returns False when the deadline hit.
        """
        start = time.monotonic()
        try:
            await asyncio.wait_for(body(), timeout=deadline)
        except asyncio.TimeoutError:
            self.logger.warning(
                "scan_deadline_exceeded",
                scanner=self.name,
                target=target,
                deadline=deadline,
                elapsed=time.monotonic() - start,
            )
            return False
        return True
