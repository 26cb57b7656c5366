"""Face enrollment service for registering member embeddings."""
import numpy as np

from gymkiosk.core.exceptions import NoFaceDetectedError
from gymkiosk.core.logging import get_logger
from gymkiosk.domain.entities.member import Member
from gymkiosk.domain.interfaces.ledger.member_ledger import MemberLedger
from gymkiosk.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor, ImageSource

logger = get_logger(__name__)


class EnrollmentService:
    """Service for enrolling a member's face.

    This service:
    1. Extracts the embedding of the primary face in one standardized image
    2. Hands it to the ledger, which replaces any previous enrollment

    Example:
        ```python
        service = EnrollmentService(extractor, ledger)

        with open("member.jpg", "rb") as f:
            member = await service.enroll("42", f.read())
        ```
    """

    def __init__(self, extractor: EmbeddingExtractor, ledger: MemberLedger) -> None:
        """Initialize the enrollment service.

        Args:
            extractor: Embedding extractor shared with the kiosk loop
            ledger: Member ledger that persists the embedding
        """
        self._extractor = extractor
        self._ledger = ledger

    async def extract_enrollment_embedding(self, image: ImageSource) -> np.ndarray:
        """Extract the embedding to enroll from a single image.

        Raises:
            NoFaceDetectedError: If the image contains no usable face
            ModelLoadError: If the embedding model could not be loaded
        """
        embedding = await self._extractor.extract(image)
        if embedding is None:
            raise NoFaceDetectedError("No face detected in enrollment image")
        return embedding

    async def enroll(self, member_id: str, image: ImageSource) -> Member:
        """Enroll (or re-enroll) the face of a member.

        Args:
            member_id: Key of the member to enroll
            image: Encoded image bytes or decoded BGR pixels

        Returns:
            The member with the new embedding

        Raises:
            MemberNotFoundError: If no member has this key
            NoFaceDetectedError: If the image contains no usable face
            ModelLoadError: If the embedding model could not be loaded
        """
        # Fail before running inference for unknown members
        await self._ledger.get_member(member_id)

        embedding = await self.extract_enrollment_embedding(image)
        member = await self._ledger.save_face_embedding(member_id, embedding)
        logger.info(
            "Member face enrolled",
            member_id=member_id,
            embedding_length=int(embedding.shape[0]),
        )
        return member
