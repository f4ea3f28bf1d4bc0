"""
Request and response models for the dream journal API.
"""

from pydantic import BaseModel, field_validator, Field
from typing import Optional, List, Dict, Any

from ..core.config import SIMILAR_MAX_LIMIT
from ..core.schema import MOODS, Dream


class DreamSymbolModel(BaseModel):
    name: str
    meaning: str = ""
    type: str = "object"

    @field_validator('name')
    @classmethod
    def name_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('symbol name cannot be empty')
        return v


class DreamAnalysisModel(BaseModel):
    emotional_analysis: Optional[str] = None
    creative_story: Optional[str] = None
    themes: Optional[List[str]] = None
    symbols: Optional[List[DreamSymbolModel]] = None


def _check_mood(v):
    if v is not None and v not in MOODS:
        raise ValueError(f'mood must be one of: {MOODS}')
    return v


def _check_clarity(v):
    if v is not None and not 1 <= v <= 5:
        raise ValueError('clarity must be between 1 and 5')
    return v


class DreamCreateRequest(BaseModel):
    id: Optional[str] = None
    content: str
    mood: str
    clarity: int = 3
    timestamp: Optional[int] = None
    is_recurring: bool = False
    is_public: bool = False
    reality_connection: Optional[str] = None
    image_url: Optional[str] = None
    analysis: Optional[DreamAnalysisModel] = None

    @field_validator('content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('content cannot be empty')
        return v

    @field_validator('mood')
    @classmethod
    def mood_must_be_valid(cls, v):
        return _check_mood(v)

    @field_validator('clarity')
    @classmethod
    def clarity_must_be_in_range(cls, v):
        return _check_clarity(v)


class DreamUpdateRequest(BaseModel):
    content: Optional[str] = None
    mood: Optional[str] = None
    clarity: Optional[int] = None
    is_recurring: Optional[bool] = None
    is_public: Optional[bool] = None
    reality_connection: Optional[str] = None
    image_url: Optional[str] = None
    analysis: Optional[DreamAnalysisModel] = None

    @field_validator('content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError('content cannot be empty')
        return v

    @field_validator('mood')
    @classmethod
    def mood_must_be_valid(cls, v):
        return _check_mood(v)

    @field_validator('clarity')
    @classmethod
    def clarity_must_be_in_range(cls, v):
        return _check_clarity(v)


class DreamResponse(BaseModel):
    id: str
    owner_id: str
    content: str
    mood: str
    clarity: int
    timestamp: int
    is_recurring: bool
    is_public: bool
    reality_connection: Optional[str] = None
    image_url: Optional[str] = None
    analysis: Optional[DreamAnalysisModel] = None

    @classmethod
    def from_dream(cls, dream: Dream) -> "DreamResponse":
        analysis = None
        if dream.analysis is not None:
            analysis = DreamAnalysisModel(
                emotional_analysis=dream.analysis.emotional_analysis,
                creative_story=dream.analysis.creative_story,
                themes=list(dream.analysis.themes),
                symbols=[DreamSymbolModel(name=s.name, meaning=s.meaning, type=s.type) for s in dream.analysis.symbols]
            )
        return cls(
            id=dream.id,
            owner_id=dream.owner_id,
            content=dream.content,
            mood=dream.mood,
            clarity=dream.clarity,
            timestamp=dream.timestamp,
            is_recurring=dream.is_recurring,
            is_public=dream.is_public,
            reality_connection=dream.reality_connection,
            image_url=dream.image_url,
            analysis=analysis
        )


class DreamListResponse(BaseModel):
    dreams: List[DreamResponse]


class SimilarRequest(BaseModel):
    dream_content: str
    dream_id: Optional[str] = None
    limit: int = Field(default=5, ge=1, le=SIMILAR_MAX_LIMIT)
    include_public: bool = False

    @field_validator('dream_content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('dream_content cannot be empty')
        return v


class SimilarDreamResponse(DreamResponse):
    similarity_score: float


class SimilarResponse(BaseModel):
    dreams: List[SimilarDreamResponse]
    count: int


class AdminRequest(BaseModel):
    secret: str
    owner_id: Optional[str] = None
    mode: Optional[str] = None

    @field_validator('mode')
    @classmethod
    def mode_must_be_valid(cls, v):
        valid_modes = ['off', 'propose', 'apply']
        if v is not None and v not in valid_modes:
            raise ValueError(f'mode must be one of: {valid_modes}')
        return v


class SyncPublicResponse(BaseModel):
    success: bool
    synced: int
    errors: List[Dict[str, Any]]


class DriftResponse(BaseModel):
    mode: str
    findings: List[Dict[str, Any]]
    results: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    dream_count: int
    embedding_provider: str
    vector_store: str
    config_issues: List[str]
