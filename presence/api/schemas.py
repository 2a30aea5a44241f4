"""Request/response models for the control API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class MoodRequest(BaseModel):
    """Manual mood nudge."""

    mood: Literal["happy", "angry", "neutral"]


class MoodResponse(BaseModel):
    mood: str
    history_len: int = Field(ge=0)


class ChatRequest(BaseModel):
    content: str = Field(min_length=1)


class ChatResponse(BaseModel):
    sent: bool


class AvatarRequest(BaseModel):
    style: str = "kratos"
    width: int = Field(default=512, ge=16, le=2048)
    height: int = Field(default=512, ge=16, le=2048)
    provider: Literal["dicebear", "robohash", "pollinations"] = "dicebear"
    verify: bool = False


class AvatarResponse(BaseModel):
    success: bool
    url: str = ""
    error: str = ""
    seed: str = ""
    source: str = ""
    fallback_url: str = ""
