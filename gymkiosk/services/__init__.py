"""Services package."""
from .enrollment import EnrollmentService
from .gallery import build_gallery
from .identity_matching import confidence_for, euclidean_distance, match_identity
from .phone_lookup import match_by_suffix
from .recognition import InsightFaceEmbeddingExtractor, ModelHandle

__all__ = [
    "EnrollmentService",
    "InsightFaceEmbeddingExtractor",
    "ModelHandle",
    "build_gallery",
    "confidence_for",
    "euclidean_distance",
    "match_by_suffix",
    "match_identity",
]
