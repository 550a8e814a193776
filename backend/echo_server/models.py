from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class AccessType(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    EMOTION_MATCH = "emotion_match"
    PRIVATE = "private"


# ------------------------
# Emotion analysis
# ------------------------

class EmotionScore(BaseModel):
    emotion: str
    intensity: float = Field(..., ge=0.0, le=1.0)


class EmotionAnalysis(BaseModel):
    primaryEmotion: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    emotions: List[EmotionScore] = Field(default_factory=list)
    summary: str = ""


# ------------------------
# Memories
# ------------------------

class MemoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True, validate_default=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None  # Voice transcript or text content
    audio_data: Optional[str] = None  # Base64 encoded audio
    audio_url: Optional[str] = None
    emotion: Optional[str] = Field(None, min_length=1)  # Classified from content when omitted
    emotion_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    location_name: Optional[str] = None
    duration: int = Field(0, ge=0)  # Audio duration in seconds
    access_type: AccessType = AccessType.PUBLIC


class MemoryEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    user_id: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    audio_data: Optional[str] = None
    audio_url: Optional[str] = None
    emotion: str = Field(..., min_length=1)
    emotion_confidence: float = Field(0.0, ge=0.0, le=1.0)
    latitude: float
    longitude: float
    location_name: Optional[str] = None
    duration: int = 0
    access_type: AccessType = AccessType.PUBLIC
    is_active: bool = True
    unlock_count: int = 0
    created_at: datetime


class MemoryUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    emotion: Optional[str] = Field(None, min_length=1)
    access_type: Optional[AccessType] = None


# ------------------------
# Unlocks
# ------------------------

class UnlockCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    echo_content: Optional[str] = None
    echo_audio_url: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)
    emotion: Optional[str] = None  # Caller's current emotion, for emotion_match memories


class MemoryUnlock(BaseModel):
    memory_id: str
    unlocked_by: str
    echo_content: Optional[str] = None
    echo_audio_url: Optional[str] = None
    unlocked_at: datetime
