# server/schemas.py
from typing import Literal, Optional

from pydantic import BaseModel, Field


class MissionIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = ""


class MissionStatusIn(BaseModel):
    status: Literal["pending", "completed"]


class ChatIn(BaseModel):
    message: str
    imageUnderEdit: Optional[str] = None


class GalleryUploadIn(BaseModel):
    imageUrl: str = Field(..., min_length=1)
    prompt: Optional[str] = None
    type: Literal["uploaded", "generated"] = "uploaded"


class GenerateImageIn(BaseModel):
    prompt: str = Field(..., min_length=1)


class EditImageIn(BaseModel):
    prompt: str = Field(..., min_length=1)
    base64Image: str = Field(..., min_length=1)
