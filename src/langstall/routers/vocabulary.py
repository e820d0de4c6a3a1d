from fastapi import APIRouter, Header, HTTPException, Query

from ..config import settings
from ..intervals import format_interval, preview_intervals
from ..logging import logger
from ..metrics import registry
from ..models.vocabulary import (
    MessageResponse,
    ReviewEventResponse,
    ReviewPreviewResponse,
    ReviewPreviewsResponse,
    ReviewRequest,
    ReviewResponse,
    VocabularyCreateRequest,
    VocabularyResponse,
    VocabularyStatsResponse,
)
from ..scheduler import is_lapse
from ..store import DuplicateVocabularyError, store

router = APIRouter(tags=["vocabulary"])


def _user(x_user_id: str | None) -> str:
    return (x_user_id or "").strip() or settings.default_user_id


@router.get("", response_model=list[VocabularyResponse], summary="List saved words")
async def list_vocabulary(x_user_id: str | None = Header(default=None)) -> list[VocabularyResponse]:
    """Return every saved word, newest first."""
    items = store.list(_user(x_user_id))
    return [VocabularyResponse.from_item(it) for it in items]


@router.get("/due", response_model=list[VocabularyResponse], summary="Words due for review")
async def list_due_vocabulary(
    limit: int | None = Query(default=None, ge=1),
    x_user_id: str | None = Header(default=None),
) -> list[VocabularyResponse]:
    """Return words whose next review time has passed, longest-waiting first."""
    cap = min(limit, settings.due_limit) if limit is not None else settings.due_limit
    items = store.list_due(_user(x_user_id), limit=cap)
    return [VocabularyResponse.from_item(it) for it in items]


@router.get("/stats", response_model=VocabularyStatsResponse, summary="Review progress counters")
async def vocabulary_stats(x_user_id: str | None = Header(default=None)) -> VocabularyStatsResponse:
    total, due_now, reviewed_today = store.get_stats(_user(x_user_id))
    return VocabularyStatsResponse(total=total, due_now=due_now, reviewed_today=reviewed_today)


@router.post("", response_model=VocabularyResponse, summary="Save a translated word")
async def add_vocabulary(
    req: VocabularyCreateRequest, x_user_id: str | None = Header(default=None)
) -> VocabularyResponse:
    """Save a word for review. It is due immediately; duplicates are rejected with 409."""
    user_id = _user(x_user_id)
    try:
        item = store.add(
            user_id,
            word=req.word,
            translation=req.translation,
            language=req.language,
            context=req.context,
            mnemonic=req.mnemonic,
        )
    except DuplicateVocabularyError as exc:
        raise HTTPException(status_code=409, detail="Word already in your vocabulary") from exc
    logger.info("vocabulary_added", user_id=user_id, vocabulary_id=item.id, language=item.language)
    return VocabularyResponse.from_item(item)


@router.delete("/{item_id}", response_model=MessageResponse, summary="Delete a saved word")
async def delete_vocabulary(item_id: int, x_user_id: str | None = Header(default=None)) -> MessageResponse:
    user_id = _user(x_user_id)
    if not store.delete(user_id, item_id):
        raise HTTPException(status_code=404, detail="Vocabulary not found")
    logger.info("vocabulary_deleted", user_id=user_id, vocabulary_id=item_id)
    return MessageResponse(message="Vocabulary deleted")


@router.post("/{item_id}/review", response_model=ReviewResponse, summary="Grade a review and reschedule")
async def review_vocabulary(
    item_id: int, req: ReviewRequest, x_user_id: str | None = Header(default=None)
) -> ReviewResponse:
    """Apply an SM-2 review with quality 0..5 and return the rescheduled word."""
    result = store.record_review(_user(x_user_id), item_id, req.quality)
    if result is None:
        raise HTTPException(status_code=404, detail="Vocabulary not found")
    item, event = result
    registry.record_review(event.quality, lapse=is_lapse(event.quality))
    return ReviewResponse(
        item=VocabularyResponse.from_item(item),
        event=ReviewEventResponse.from_event(event),
        interval_label=format_interval(item.interval),
    )


@router.get("/{item_id}/reviews", response_model=list[ReviewEventResponse], summary="Review history")
async def list_reviews(
    item_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    x_user_id: str | None = Header(default=None),
) -> list[ReviewEventResponse]:
    user_id = _user(x_user_id)
    if store.get(user_id, item_id) is None:
        raise HTTPException(status_code=404, detail="Vocabulary not found")
    return [ReviewEventResponse.from_event(ev) for ev in store.list_reviews(user_id, item_id, limit=limit)]


@router.get("/{item_id}/preview", response_model=ReviewPreviewsResponse, summary="Preview next intervals per button")
async def preview_review(item_id: int, x_user_id: str | None = Header(default=None)) -> ReviewPreviewsResponse:
    """Show what again/hard/good/easy would schedule without committing a review."""
    item = store.get(_user(x_user_id), item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Vocabulary not found")
    previews = {
        name: ReviewPreviewResponse(quality=p.quality, interval=p.interval, label=p.label)
        for name, p in preview_intervals(item.state).items()
    }
    return ReviewPreviewsResponse(id=item.id, previews=previews)
