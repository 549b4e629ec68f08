import os
from fastapi import APIRouter

from bloodlink.intake.setup import get_engine

router = APIRouter()


@router.get("/")
async def root():
    return {
        "status": "BloodLink Assistant is Running",
        "features": ["chat", "blood_request_intake"],
        "endpoints": {
            "message": "/api/chat/message",
            "history": "/api/chat/history/{requester_id}",
            "abort_intake": "/api/chat/session/{requester_id}",
            "requests": "/api/chat/requests/{requester_id}",
        }
    }


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    engine = get_engine()
    return {
        "status": "healthy",
        "service": "bloodlink-assistant",
        "port": os.environ.get("PORT", 8080),
        "intake_ready": engine is not None,
        "active_intakes": engine.store.active_count if engine is not None else 0,
    }
