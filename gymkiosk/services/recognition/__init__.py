from .insight_face import InsightFaceEmbeddingExtractor, load_face_analysis
from .model_handle import ModelHandle

__all__ = ["InsightFaceEmbeddingExtractor", "ModelHandle", "load_face_analysis"]
