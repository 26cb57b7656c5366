"""
InsightFace-based implementation of the embedding extractor.

This module turns a single still image or live video frame into the
embedding of its primary face using the InsightFace ``FaceAnalysis``
pipeline (detection + recognition modules only).

Key Features:
    - Lazy, single-flight model loading through an injected ModelHandle
    - Fixed input resolution (long edge) and loose detection floor so side
      lighting and angled faces still pass while empty frames are rejected
    - Single-face assumption: the highest scoring detection wins
    - Inference failures are logged and reported as "no face"

Example:
    ```python
    extractor = InsightFaceEmbeddingExtractor()

    with open("member.jpg", "rb") as f:
        embedding = await extractor.extract(f.read())
    ```

Note:
    Embeddings are the L2-normalised ``normed_embedding`` vectors, so the
    matcher threshold reads as a distance between unit vectors.
"""
import asyncio
from typing import Any, List, Optional, Sequence

import numpy as np

from gymkiosk.core.config import Settings, settings
from gymkiosk.core.exceptions import InvalidImageError
from gymkiosk.core.logging import get_logger
from gymkiosk.core.utils.image import bytes_to_numpy_array, resize_long_edge
from gymkiosk.domain.entities.face import BoundingBox, Face, to_embedding
from gymkiosk.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor, ImageSource
from gymkiosk.domain.value_objects.recognition import Frame
from gymkiosk.services.recognition.model_handle import ModelHandle

logger = get_logger(__name__)


def load_face_analysis(config: Settings = settings) -> Any:
    """Build and prepare an InsightFace ``FaceAnalysis`` pipeline.

    Blocking; meant to run inside ``ModelHandle``'s worker thread.
    """
    from insightface.app import FaceAnalysis

    model = FaceAnalysis(
        name=config.MODEL_NAME,
        root=config.MODEL_CACHE_DIR,
        providers=config.model_providers,
        allowed_modules=["detection", "recognition"],
    )
    size = config.DETECTION_INPUT_SIZE
    model.prepare(ctx_id=0, det_thresh=config.MIN_FACE_CONFIDENCE, det_size=(size, size))
    return model


class InsightFaceEmbeddingExtractor(EmbeddingExtractor):
    """
    InsightFace-based embedding extractor.

    Attributes:
        model_handle: Handle owning the lazily loaded FaceAnalysis pipeline
        input_size: Long edge, in pixels, images are scaled to before detection
        min_confidence: Detections scoring below this are ignored
    """

    def __init__(
        self,
        model_handle: Optional[ModelHandle] = None,
        input_size: Optional[int] = None,
        min_confidence: Optional[float] = None,
    ) -> None:
        """Initialize the extractor without loading the model."""
        self.model_handle = model_handle or ModelHandle(
            load_face_analysis,
            max_attempts=settings.MODEL_LOAD_ATTEMPTS,
            name=settings.MODEL_NAME,
        )
        self.input_size = input_size or settings.DETECTION_INPUT_SIZE
        self.min_confidence = settings.MIN_FACE_CONFIDENCE if min_confidence is None else min_confidence

    async def load_models(self) -> None:
        await self.model_handle.get()

    def release_models(self) -> None:
        self.model_handle.release()

    def _prepare_image(self, source: ImageSource) -> np.ndarray:
        """Decode and scale an image source to the detector input size."""
        if isinstance(source, Frame):
            image = source.image
        elif isinstance(source, (bytes, bytearray)):
            try:
                image = bytes_to_numpy_array(bytes(source))
            except ValueError as e:
                raise InvalidImageError(f"Invalid image format: {str(e)}")
        else:
            image = source

        if image is None or image.ndim not in (2, 3) or image.size == 0:
            raise InvalidImageError("Image has no pixels")

        return resize_long_edge(image, self.input_size)

    def _select_primary_face(self, faces: Sequence[Any]) -> Optional[Any]:
        """Pick the highest scoring detection above the confidence floor."""
        candidates = [
            face for face in faces
            if float(face.det_score) >= self.min_confidence and self._has_usable_embedding(face)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda face: float(face.det_score))

    def _has_usable_embedding(self, face_data: Any) -> bool:
        # A zero-norm embedding normalises to NaN
        embedding = self._raw_embedding(face_data)
        return embedding is not None and bool(np.all(np.isfinite(embedding)))

    @staticmethod
    def _raw_embedding(face_data: Any) -> Optional[np.ndarray]:
        embedding = getattr(face_data, "normed_embedding", None)
        if embedding is None:
            embedding = getattr(face_data, "embedding", None)
        return embedding

    def _convert_to_face(self, face_data: Any, image: np.ndarray) -> Face:
        """Convert an InsightFace detection into our Face domain model."""
        height, width = image.shape[:2]
        x1, y1, x2, y2 = (float(v) for v in face_data.bbox[:4])
        return Face(
            bounding_box=BoundingBox(
                left=x1 / width,
                top=y1 / height,
                width=(x2 - x1) / width,
                height=(y2 - y1) / height,
            ),
            confidence=float(face_data.det_score),
            embedding=to_embedding(self._raw_embedding(face_data)),
        )

    async def detect_primary_face(self, source: ImageSource) -> Optional[Face]:
        """
        Detect the primary face in an image and extract its embedding.

        Args:
            source: Encoded image bytes, decoded BGR pixels or a live video frame

        Returns:
            Face with bounding box and embedding, or None when no face was found

        Raises:
            ModelLoadError: If the model could not be loaded
        """
        if isinstance(source, Frame) and not source.is_usable:
            return None

        model = await self.model_handle.get()

        try:
            image = self._prepare_image(source)
            faces: List[Any] = await asyncio.to_thread(model.get, image)
            primary = self._select_primary_face(faces or [])
            if primary is None:
                logger.debug("No face detected", faces_found=len(faces or []))
                return None
            return self._convert_to_face(primary, image)
        except Exception as e:
            logger.error("Embedding extraction failed", error=str(e), exc_info=True)
            return None

    async def extract(self, source: ImageSource) -> Optional[np.ndarray]:
        face = await self.detect_primary_face(source)
        if face is None:
            return None
        return face.embedding
