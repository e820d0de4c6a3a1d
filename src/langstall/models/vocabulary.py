from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..scheduler import MAX_QUALITY, MIN_QUALITY, ReviewEvent, VocabularyItem


class VocabularyCreateRequest(BaseModel):
    """Request model for saving a translated word.

    Text fields are stripped before the length limits are checked.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {
                    "word": "serpiente",
                    "translation": "snake",
                    "language": "Spanish",
                    "context": "Representaba una serpiente boa que se tragaba a una fiera.",
                }
            ]
        },
    )

    word: str = Field(min_length=1, max_length=200)
    translation: str = Field(min_length=1, max_length=2000)
    language: str = Field(min_length=1, max_length=50)
    context: str | None = Field(default=None, max_length=500)
    mnemonic: str | None = Field(default=None, max_length=2000)

    @field_validator("context", "mnemonic")
    @classmethod
    def _empty_to_none(cls, value: str | None) -> str | None:
        return value or None


class ReviewRequest(BaseModel):
    """Review submission.

    - quality: 0..5, 5 = perfect recall, 0 = complete failure
    """

    quality: int = Field(ge=MIN_QUALITY, le=MAX_QUALITY)


class VocabularyResponse(BaseModel):
    id: int
    word: str
    translation: str
    language: str
    context: str | None = None
    mnemonic: str | None = None
    interval: int
    ease_factor: float
    review_count: int
    next_review: datetime
    created_at: datetime | None = None

    @classmethod
    def from_item(cls, item: VocabularyItem) -> "VocabularyResponse":
        return cls(
            id=item.id,
            word=item.word,
            translation=item.translation,
            language=item.language,
            context=item.context,
            mnemonic=item.mnemonic,
            interval=item.interval,
            ease_factor=item.ease_factor,
            review_count=item.review_count,
            next_review=item.next_review,
            created_at=item.created_at,
        )


class ReviewEventResponse(BaseModel):
    vocabulary_id: int
    quality: int
    reviewed_at: datetime

    @classmethod
    def from_event(cls, event: ReviewEvent) -> "ReviewEventResponse":
        return cls(
            vocabulary_id=event.vocabulary_item_id,
            quality=event.quality,
            reviewed_at=event.reviewed_at,
        )


class ReviewResponse(BaseModel):
    """Updated word plus the logged review and a label for the new interval."""

    item: VocabularyResponse
    event: ReviewEventResponse
    interval_label: str


class ReviewPreviewResponse(BaseModel):
    quality: int
    interval: int
    label: str


class ReviewPreviewsResponse(BaseModel):
    """Per-button preview of the next interval (again/hard/good/easy)."""

    id: int
    previews: dict[str, ReviewPreviewResponse]


class VocabularyStatsResponse(BaseModel):
    """Progress counters.

    - total: saved words
    - due_now: words whose next review is at or before now
    - reviewed_today: reviews logged since 00:00 UTC
    """

    total: int
    due_now: int
    reviewed_today: int


class MessageResponse(BaseModel):
    message: str
