"""OpenCV webcam implementation of the frame source."""
import asyncio
from typing import Any, Callable, Optional

import cv2

from gymkiosk.core.config import settings
from gymkiosk.core.exceptions import CameraUnavailableError
from gymkiosk.core.logging import get_logger
from gymkiosk.domain.interfaces.capture.frame_source import FrameSource
from gymkiosk.domain.value_objects.recognition import Frame

logger = get_logger(__name__)


class OpenCVCamera(FrameSource):
    """Webcam feed read through ``cv2.VideoCapture``.

    Blocking OpenCV calls run in worker threads so the kiosk loop stays
    responsive. A failed grab yields a frame that is not ready instead of
    raising; only failing to open the device is an error.
    """

    def __init__(
        self,
        camera_index: Optional[int] = None,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
    ) -> None:
        """Initialize the camera without opening it.

        Args:
            camera_index: OpenCV device index (defaults to CAMERA_INDEX)
            capture_factory: Callable creating the capture object
        """
        self.camera_index = settings.CAMERA_INDEX if camera_index is None else camera_index
        self._capture_factory = capture_factory
        self._capture: Optional[Any] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    async def open(self) -> None:
        if self._capture is not None:
            return
        capture = await asyncio.to_thread(self._capture_factory, self.camera_index)
        if capture is None or not capture.isOpened():
            if capture is not None:
                await asyncio.to_thread(capture.release)
            raise CameraUnavailableError(
                "Failed to open camera",
                details={"camera_index": self.camera_index}
            )
        self._capture = capture
        logger.info("Camera opened", camera_index=self.camera_index)

    async def read(self) -> Frame:
        capture = self._capture
        if capture is None:
            return Frame(image=None, ready=False)
        ok, image = await asyncio.to_thread(capture.read)
        if not ok or image is None:
            return Frame(image=None, ready=False)
        return Frame(image=image, ready=True)

    async def close(self) -> None:
        capture, self._capture = self._capture, None
        if capture is None:
            return
        await asyncio.to_thread(capture.release)
        logger.info("Camera released", camera_index=self.camera_index)
