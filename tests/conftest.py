"""Shared fixtures."""
import pytest

from gymkiosk.infrastructure.ledger import JsonMemberLedger
from tests.fakes import FakeCamera, ScriptedExtractor


@pytest.fixture
def ledger() -> JsonMemberLedger:
    return JsonMemberLedger(path=None)


@pytest.fixture
def extractor() -> ScriptedExtractor:
    return ScriptedExtractor()


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()
