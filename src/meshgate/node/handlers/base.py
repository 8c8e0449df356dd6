from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseHandler(ABC):
    """Receives the decoded payload of every frame the dispatcher accepts."""

    @abstractmethod
    async def __call__(self, payload: bytes, src: int) -> Optional[Any]:
        pass
