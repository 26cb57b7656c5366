"""Service container for dependency injection."""
from typing import Optional

from gymkiosk.core.config import settings
from gymkiosk.domain.interfaces.capture.frame_source import FrameSource
from gymkiosk.domain.interfaces.ledger.member_ledger import MemberLedger
from gymkiosk.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from gymkiosk.infrastructure.camera import OpenCVCamera
from gymkiosk.infrastructure.ledger import JsonMemberLedger
from gymkiosk.services.enrollment import EnrollmentService
from gymkiosk.services.kiosk.session import KioskSession
from gymkiosk.services.recognition import InsightFaceEmbeddingExtractor


class ServiceContainer:
    """Container for application services.

    This container owns the single embedding extractor (and therefore the
    single loaded model) shared by enrollment and the kiosk loop.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        async with container.create_kiosk_session() as session:
            ...
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        # Core services - Use interface type hints
        self.extractor: Optional[EmbeddingExtractor] = None
        self.ledger: Optional[MemberLedger] = None

        # Domain services (depend on interfaces)
        self.enrollment_service: Optional[EnrollmentService] = None

    async def initialize(
        self,
        extractor: Optional[EmbeddingExtractor] = None,
        ledger: Optional[MemberLedger] = None,
    ) -> None:
        """Initialize all services in the correct order.

        Args:
            extractor: Override for the default InsightFace extractor
            ledger: Override for the default JSON ledger
        """
        self.extractor = extractor or InsightFaceEmbeddingExtractor()
        self.ledger = ledger or JsonMemberLedger(settings.LEDGER_PATH)
        self.enrollment_service = EnrollmentService(
            extractor=self.extractor,
            ledger=self.ledger,
        )

    def create_kiosk_session(self, frame_source: Optional[FrameSource] = None, **options) -> KioskSession:
        """Build a kiosk session bound to the shared extractor and ledger."""
        if self.extractor is None or self.ledger is None:
            raise RuntimeError("Service container is not initialized")
        return KioskSession(
            extractor=self.extractor,
            ledger=self.ledger,
            frame_source=frame_source or OpenCVCamera(),
            **options,
        )

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.extractor is not None:
            self.extractor.release_models()
        self.enrollment_service = None
        self.ledger = None
        self.extractor = None


# Global container instance
container = ServiceContainer()
