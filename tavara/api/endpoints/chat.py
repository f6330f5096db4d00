"""
Tavara.care Coordination Service - Registration Assistant Routes

Public endpoints; conversations are identified by their session id.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tavara.api.dependencies import check_rate_limit, get_request_id, validate_request
from tavara.api.schemas import ChatStartRequest, ChatReplyRequest
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.services.chat_service import ChatService

router = APIRouter(prefix="/chat", tags=["Chat"])
chat_service = ChatService()


@router.post("/start", summary="Start or resume a conversation")
def start_conversation(
    body: ChatStartRequest,
    db: Session = Depends(get_db),
    _: dict = Depends(validate_request)
):
    return chat_service.start_conversation(db, body.session_id)


@router.post(
    "/reply",
    summary="Answer the current question",
    description="Validates the reply against the field being asked for and posts the next prompt"
)
def reply(
    body: ChatReplyRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    _: None = Depends(check_rate_limit),
    context: dict = Depends(validate_request)
):
    log_request(endpoint="/chat/reply", method="POST", request_id=request_id,
                message_length=len(body.message))
    return chat_service.process_reply(db, body.session_id, body.message)


@router.get("/sessions/{session_id}", summary="Conversation state")
def get_conversation(
    session_id: str,
    db: Session = Depends(get_db),
    _: dict = Depends(validate_request)
):
    return chat_service.to_state(chat_service.get_conversation(db, session_id))


@router.post("/conversations/{conversation_id}/prefill", summary="Registration prefill")
def registration_prefill(
    conversation_id: str,
    db: Session = Depends(get_db),
    _: dict = Depends(validate_request)
):
    return chat_service.get_registration_prefill(db, conversation_id)
