"""Service interfaces package."""
from .capture import FrameSource
from .ledger import MemberLedger
from .recognition import EmbeddingExtractor

__all__ = ["EmbeddingExtractor", "FrameSource", "MemberLedger"]
