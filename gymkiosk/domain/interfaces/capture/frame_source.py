"""Live frame source interface."""
from abc import ABC, abstractmethod
from typing import Any, Optional, TypeVar

from ...value_objects.recognition import Frame

T = TypeVar('T', bound='FrameSource')


class FrameSource(ABC):
    """Interface for an exclusively owned camera feed.

    The feed is acquired with ``open`` and must be released with ``close``
    on every exit path. Using the source as an async context manager does
    both.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    async def open(self) -> None:
        """
        Acquire the camera.

        Raises:
            CameraUnavailableError: If the camera cannot be opened
        """
        pass

    @abstractmethod
    async def read(self) -> Frame:
        """
        Read the current frame.

        Returns:
            Frame, with ``ready`` false when no decoded frame is available
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the camera. Safe to call when already closed."""
        pass

    async def __aenter__(self: T) -> T:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Optional[type], exc_val: Optional[Exception],
                        exc_tb: Optional[Any]) -> None:
        await self.close()
