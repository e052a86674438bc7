"""
Query API Routes

Free-text business questions over an uploaded order snapshot.
"""

from fastapi import APIRouter, HTTPException

from api.routes.reports import get_generator
from api.schemas.requests import QueryRequest
from api.schemas.responses import QueryAnswer, QuerySuggestions
from core.cache import session_store
from query.engine import QueryEngine
from query.suggestions import QUERY_CATEGORIES, QUICK_ACTIONS


router = APIRouter()

# One engine per session so the single-flight guard and report cache are per snapshot
_engines: dict[str, QueryEngine] = {}


def get_engine(session_id: str) -> QueryEngine:
    engine = _engines.get(session_id)
    if engine is None:
        engine = QueryEngine(get_generator(session_id))
        _engines[session_id] = engine
    return engine


def drop_engine(session_id: str) -> None:
    _engines.pop(session_id, None)


session_store.add_removal_listener(drop_engine)


@router.get("/query/suggestions", response_model=QuerySuggestions)
async def get_suggestions() -> QuerySuggestions:
    """Example questions grouped by category, plus quick actions."""
    return QuerySuggestions(categories=QUERY_CATEGORIES, quick_actions=QUICK_ACTIONS)


@router.post("/query/{session_id}", response_model=QueryAnswer, response_model_exclude_none=True)
async def ask_question(session_id: str, request: QueryRequest) -> QueryAnswer:
    """
    Answer a business question.

    Always 200 once the session exists: validation problems, a busy engine
    and timeouts come back as ``type="error"`` answers.
    """
    if session_store.get(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return await get_engine(session_id).process_query(request.question)
