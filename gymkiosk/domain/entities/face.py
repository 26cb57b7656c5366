"""Core face domain entities."""
from typing import Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_embedding(values: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """Convert raw values into an immutable 1-D float32 embedding.

    Raises:
        ValueError: If the values are not a non-empty flat vector
    """
    embedding = np.array(values, dtype=np.float32)
    if embedding.ndim != 1 or embedding.size == 0:
        raise ValueError(f"Embedding must be a non-empty 1-D vector, got shape {embedding.shape}")
    embedding.setflags(write=False)
    return embedding


class BoundingBox(BaseModel):
    """Face bounding box coordinates, relative to image size (0-1)."""
    left: float = Field(..., description="Left coordinate of the bounding box")
    top: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., description="Width of the bounding box")
    height: float = Field(..., description="Height of the bounding box")


class Face(BaseModel):
    """Face detection result with optional embedding."""
    confidence: float = Field(..., description="Confidence score of the detection")
    bounding_box: BoundingBox = Field(..., description="Bounding box coordinates")
    embedding: Optional[np.ndarray] = Field(None, description="Face embedding vector")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        """Validate and convert embedding to an immutable numpy array."""
        if v is None:
            return None
        return to_embedding(v)
