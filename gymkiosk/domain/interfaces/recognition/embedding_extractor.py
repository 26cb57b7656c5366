"""Embedding extractor interface."""
from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np

from ...value_objects.recognition import Frame

ImageSource = Union[bytes, np.ndarray, Frame]


class EmbeddingExtractor(ABC):
    """Interface for turning a face image into an embedding.

    Implementations wrap an opaque model. The kiosk loop, the matcher and
    enrollment only depend on this interface, so the inference backend can
    be swapped (local runtime, remote service or a test double).
    """

    @abstractmethod
    async def load_models(self) -> None:
        """
        Load the underlying model if it is not loaded yet.

        Concurrent callers share a single in-flight load.

        Raises:
            ModelLoadError: If the model could not be loaded
        """
        pass

    def release_models(self) -> None:
        """Drop the loaded model; the next use loads it again."""
        pass

    @abstractmethod
    async def extract(self, source: ImageSource) -> Optional[np.ndarray]:
        """
        Extract the embedding of the primary face in an image.

        Args:
            source: Encoded image bytes, decoded BGR pixels or a live video frame

        Returns:
            Read-only 1-D embedding, or None when no face was found, the frame
            was not ready or inference failed

        Raises:
            ModelLoadError: If the model could not be loaded
        """
        pass
