"""Tests for member face enrollment."""
import numpy as np
import pytest

from gymkiosk.core.exceptions import MemberNotFoundError, NoFaceDetectedError
from gymkiosk.services.enrollment import EnrollmentService
from gymkiosk.services.gallery import build_gallery
from gymkiosk.services.identity_matching import match_identity
from tests.fakes import unit

IMAGE = np.zeros((4, 4, 3), dtype=np.uint8)


class TestEnrollmentService:
    """Enrollment through the extractor into the ledger."""

    async def test_enroll_stores_embedding(self, ledger, extractor):
        """Should store the extracted embedding on the member."""
        member = await ledger.add_member("Kim", "010-1234-5678", total_tickets=5)
        extractor.push(unit(0))

        enrolled = await EnrollmentService(extractor, ledger).enroll(member.id, IMAGE)

        assert enrolled.is_enrolled
        stored = await ledger.get_member(member.id)
        np.testing.assert_allclose(stored.face_embedding, unit(0))

    async def test_re_enrollment_replaces_embedding(self, ledger, extractor):
        """Should keep only the most recent embedding."""
        member = await ledger.add_member("Kim", "010-1234-5678")
        extractor.push(unit(0), unit(1))
        service = EnrollmentService(extractor, ledger)

        await service.enroll(member.id, IMAGE)
        await service.enroll(member.id, IMAGE)

        gallery = build_gallery(await ledger.list_members())
        assert len(gallery) == 1
        assert match_identity(unit(0), gallery, 0.5) is None
        assert match_identity(unit(1), gallery, 0.5).identity == member.id

    async def test_no_face(self, ledger, extractor):
        """Should refuse an image without a face and keep the member unenrolled."""
        member = await ledger.add_member("Kim", "010-1234-5678")
        extractor.push(None)

        with pytest.raises(NoFaceDetectedError):
            await EnrollmentService(extractor, ledger).enroll(member.id, IMAGE)

        assert not (await ledger.get_member(member.id)).is_enrolled

    async def test_unknown_member(self, ledger, extractor):
        """Should fail before running the extractor for an unknown member."""
        extractor.push(unit(0))

        with pytest.raises(MemberNotFoundError):
            await EnrollmentService(extractor, ledger).enroll("missing", IMAGE)

        assert extractor.calls == 0

    async def test_enrolled_member_is_recognised(self, ledger, extractor):
        """Should let the matcher find a freshly enrolled member."""
        kim = await ledger.add_member("Kim", "010-1234-5678", total_tickets=1)
        lee = await ledger.add_member("Lee", "010-9999-5678", total_tickets=1)
        extractor.push(unit(0), unit(1))
        service = EnrollmentService(extractor, ledger)
        await service.enroll(kim.id, IMAGE)
        await service.enroll(lee.id, IMAGE)

        result = match_identity(unit(1), build_gallery(await ledger.list_members()), 0.5)

        assert result.identity == lee.id
        assert result.distance == 0.0
