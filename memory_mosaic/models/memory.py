from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from memory_mosaic.models.grid_position import GridPosition


class ContentKind(str, Enum):
    QUOTE = "quote"
    SPEECH = "speech"
    AUDIO = "audio"
    VIDEO = "video"


class AdditionalContent(BaseModel):
    """Content shown next to a memory's photo. The payload is text for quotes/speeches, a media handle otherwise."""

    kind: ContentKind
    payload: str = Field(min_length=1)


class Memory(BaseModel):
    """A submitted memory occupying one cell of the canonical grid"""

    id: str
    canonical_position: GridPosition
    photo_ref: Optional[str] = None
    grid_photo_ref: Optional[str] = None
    additional_content: Optional[AdditionalContent] = None
    submitter_name: Optional[str] = None
    created_at: datetime


class MemorySubmission(BaseModel):
    """A memory as submitted by a user, before a cell has been reserved for it"""

    position: Optional[GridPosition] = Field(
        None, description="An explicit canonical cell. If omitted, a free cell is allocated."
    )
    photo_ref: Optional[str] = Field(None, description="Media store handle of the primary photo")
    grid_photo_ref: Optional[str] = Field(None, description="Media store handle of the square cropped photo")
    additional_content: Optional[AdditionalContent] = None
    submitter_name: Optional[str] = Field(None, max_length=200)
