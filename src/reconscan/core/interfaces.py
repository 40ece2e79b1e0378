"""Abstract interfaces for scanners and rate limiters."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

TResult = TypeVar("TResult", bound=BaseModel)


class IScanner(ABC, Generic[TResult]):
    """A scanner producing one result model per finding."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short name, also used as the logger name."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """One-line summary of what the scanner finds."""
        ...

    @abstractmethod
    def get_capabilities(self) -> list[str]:
        """Techniques the scanner uses, for display."""
        ...


class ILimiter(ABC):
    """Interface shared by the token-bucket limiters."""

    @abstractmethod
    def allow(self) -> bool:
        """Consume one token if available, without blocking."""
        ...

    @abstractmethod
    async def wait(self) -> None:
        """Block until a token is available."""
        ...
