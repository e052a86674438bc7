"""
Order Snapshot API Routes

Endpoints for order snapshot upload and session management.
"""

import hashlib
from datetime import datetime

from fastapi import APIRouter, HTTPException

from api.schemas.requests import OrdersUpload
from api.schemas.responses import SessionInfo, UploadResponse
from config import get_settings
from core.cache import session_store
from core.logging_config import api_logger as logger
from core.order_loader import order_loader


router = APIRouter()


def generate_session_id(source: str) -> str:
    """Unique session ID based on the source label and upload time."""
    content = f"{source}_{datetime.now().isoformat()}"
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@router.post("/orders", response_model=UploadResponse)
async def upload_orders(payload: OrdersUpload) -> UploadResponse:
    """
    Upload an order snapshot for analysis.

    Records are normalized up front so malformed entries are reported in
    the response; the raw snapshot is kept for later report requests.
    """
    settings = get_settings()

    if len(payload.orders) > settings.max_orders_per_upload:
        raise HTTPException(
            status_code=413,
            detail=f"Too many orders. Maximum is {settings.max_orders_per_upload} per upload"
        )

    orders = order_loader.load(payload.orders)
    session_id = generate_session_id(payload.source)
    session_store.create(session_id, payload.orders, {
        "source": payload.source,
        "order_count": len(orders),
        "first_order_at": min((o.timestamp for o in orders), default=None),
        "last_order_at": max((o.timestamp for o in orders), default=None),
    })
    skipped = len(payload.orders) - len(orders)
    logger.info(f"Session {session_id}: {len(orders)} orders from {payload.source}, {skipped} skipped")

    return UploadResponse(
        session_id=session_id,
        source=payload.source,
        order_count=len(orders),
        skipped=skipped,
        message=f"Successfully loaded {len(orders)} orders from {payload.source}",
    )


@router.get("/sessions/{session_id}", response_model=SessionInfo)
async def get_session(session_id: str) -> SessionInfo:
    """Get session information."""
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return SessionInfo(
        session_id=session_id,
        source=session.get("source", "unknown"),
        created_at=datetime.fromtimestamp(session.get("created_at", 0)),
        order_count=session.get("order_count", 0),
        first_order_at=session.get("first_order_at"),
        last_order_at=session.get("last_order_at"),
    )


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str) -> dict:
    """Delete a session and its snapshot."""
    if not session_store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")

    return {"message": f"Session {session_id} deleted successfully"}


@router.get("/sessions")
async def list_sessions() -> dict:
    """List all active sessions."""
    sessions = []
    for sid in session_store.list_sessions():
        session = session_store.get(sid)
        if session:
            sessions.append({
                "sessionId": sid,
                "source": session.get("source"),
                "orderCount": session.get("order_count"),
            })

    return {"sessions": sessions, "count": len(sessions)}
