"""Face recognition value objects."""
from datetime import datetime, timezone
from typing import Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gymkiosk.domain.entities.face import to_embedding


class Frame(BaseModel):
    """A single frame read from a live video feed.

    A frame is only usable when ``ready`` is true and it carries pixels; a
    feed that has ended or has not decoded its first frame yet produces
    frames that are not ready.
    """
    image: Optional[np.ndarray] = Field(None, description="Decoded BGR pixels")
    ready: bool = Field(True, description="Whether the feed had a decoded frame available")
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def is_usable(self) -> bool:
        return self.ready and self.image is not None and self.image.size > 0


class GalleryEntry(BaseModel):
    """One enrolled identity as seen by the matcher."""
    identity: str = Field(..., description="Opaque member key")
    embedding: Optional[np.ndarray] = Field(None, description="Enrolled face embedding")
    phone: str = Field("", description="Phone number, any formatting")
    status: str = Field("active", description="Membership status")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v: Optional[Union[np.ndarray, list]]) -> Optional[np.ndarray]:
        if v is None:
            return None
        return to_embedding(v)


class MatchResult(BaseModel):
    """Best gallery match for a query embedding."""
    identity: str = Field(..., description="Matched member key")
    distance: float = Field(..., ge=0.0, description="L2 distance to the matched embedding")
    confidence: float = Field(..., ge=0.0, le=1.0, description="1.0 at distance 0, 0.0 at the threshold")

    model_config = ConfigDict(frozen=True)
