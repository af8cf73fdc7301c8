import logging

from fastapi import APIRouter, Depends, status

from .. import schemas
from ..auth import Claims, get_store, require_claims
from ..errors import StoreError, ValidationError
from ..store import Store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["forum"])

PROTECTED_RESPONSES = {
    401: {"model": schemas.ErrorResponse},
    403: {"model": schemas.ErrorResponse},
    500: {"model": schemas.ErrorResponse},
}


@router.get("/data", response_model=schemas.ForumData, responses=PROTECTED_RESPONSES)
def forum_data(
    claims: Claims = Depends(require_claims),
    store: Store = Depends(get_store),
):
    """Categories plus every question, newest first."""
    try:
        categories = store.list_categories()
        questions = store.list_questions()
    except StoreError as exc:
        logger.exception("Forum data fetch error")
        raise StoreError("Failed to retrieve forum data") from exc
    return {"categories": categories, "questions": questions}


@router.get(
    "/exploration-data",
    response_model=schemas.ExplorationData,
    responses=PROTECTED_RESPONSES,
)
def exploration_data(
    claims: Claims = Depends(require_claims),
    store: Store = Depends(get_store),
):
    try:
        return store.list_exploration_data()
    except StoreError as exc:
        logger.exception("Exploration data fetch error")
        raise StoreError("Failed to retrieve celestial data") from exc


@router.post(
    "/questions",
    response_model=schemas.MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**PROTECTED_RESPONSES, 400: {"model": schemas.ErrorResponse}},
)
def create_question(
    payload: schemas.QuestionCreate,
    claims: Claims = Depends(require_claims),
    store: Store = Depends(get_store),
):
    schemas.require_fields(
        title=payload.title, content=payload.content, category_id=payload.category_id
    )
    category_id = schemas.parse_category_id(payload.category_id)

    try:
        if not store.category_exists(category_id):
            raise ValidationError("Unknown category", field="category_id")
        store.create_question(
            title=payload.title.strip(),
            content=payload.content.strip(),
            category_id=category_id,
            user_id=claims.id,
        )
    except StoreError as exc:
        logger.exception("Question submission error")
        raise StoreError("Failed to post question") from exc

    logger.info("User %s posted a question in category %s", claims.username, category_id)
    return {"message": "Question posted!"}
