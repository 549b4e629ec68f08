"""
Chat API: HTTP endpoints for the blood request assistant.

Endpoints:
  POST   /api/chat/message                  Send a message, get the assistant's reply
  GET    /api/chat/history/{requester_id}   Read the running conversation
  DELETE /api/chat/session/{requester_id}   Abort an in-progress intake
  GET    /api/chat/requests/{requester_id}  Blood requests created through chat
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from bloodlink.intake.repository import InMemoryBloodRequestRepository
from bloodlink.intake.setup import (
    get_conversation_store,
    get_engine,
    get_repository,
)

logger = logging.getLogger("bloodlink.api")

router = APIRouter(prefix="/api/chat", tags=["chat"])


# ── Request / Response Models ──


class SendMessageRequest(BaseModel):
    requester_id: str
    text: str = ""


class SendMessageResponse(BaseModel):
    reply: str
    stage: str | None = None  # None when no intake is in progress
    conversation_id: str


class HistoryMessage(BaseModel):
    role: str
    content: str
    timestamp: str


class HistoryResponse(BaseModel):
    conversation_id: str | None = None
    title: str = ""
    messages: list[HistoryMessage] = Field(default_factory=list)


# ── Endpoints ──


def _require_engine():
    engine = get_engine()
    if engine is None:
        raise HTTPException(status_code=503, detail="Intake engine not initialized")
    return engine


@router.post("/message", response_model=SendMessageResponse)
async def send_message(request: SendMessageRequest):
    """
    Route one requester message through the intake engine.

    The user message and the reply are both appended to the requester's
    conversation log; the log before this message is passed as history.
    """
    engine = _require_engine()

    requester_id = request.requester_id.strip()
    if not requester_id:
        raise HTTPException(status_code=400, detail="requester_id is required")
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Message text is required")

    conversation = get_conversation_store().get_or_create(requester_id, request.text)
    history = conversation.as_history()

    result = await engine.handle_message(requester_id, request.text, history)

    conversation.add("user", request.text)
    conversation.add("assistant", result.text)

    return SendMessageResponse(
        reply=result.text,
        stage=result.stage.value if result.stage is not None else None,
        conversation_id=conversation.conversation_id,
    )


@router.get("/history/{requester_id}", response_model=HistoryResponse)
async def get_history(requester_id: str):
    _require_engine()
    conversation = get_conversation_store().get(requester_id)
    if conversation is None:
        return HistoryResponse()
    return HistoryResponse(
        conversation_id=conversation.conversation_id,
        title=conversation.title,
        messages=[
            HistoryMessage(
                role=m.role, content=m.content, timestamp=m.timestamp.isoformat()
            )
            for m in conversation.messages
        ],
    )


@router.delete("/session/{requester_id}")
async def abort_session(requester_id: str):
    """Discard the requester's in-progress intake, if any."""
    engine = _require_engine()
    aborted = await engine.abort(requester_id)
    return {"status": "ok", "aborted": aborted}


@router.get("/requests/{requester_id}")
async def list_requests(requester_id: str):
    _require_engine()
    repository = get_repository()
    if not isinstance(repository, InMemoryBloodRequestRepository):
        raise HTTPException(
            status_code=501,
            detail="Listing requests is only supported by the in-memory store",
        )
    records = repository.list_by_requester(requester_id)
    return {
        "requester_id": requester_id,
        "count": len(records),
        "requests": [r.model_dump(mode="json") for r in records],
    }
