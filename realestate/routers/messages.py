# realestate/routers/messages.py
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from realestate.core.auth import get_guard
from realestate.core.db import get_db
from realestate.core.guard import Guard
from realestate.core.response import ok
from realestate.schemas.common import Envelope, Pagination
from realestate.schemas.message import (
    ConversationListOut, ConversationOut, MessageSendIn, MessageSentOut, UnreadCountOut,
)
from realestate.services import messages

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=Envelope[ConversationListOut])
def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    items, total = messages.list_conversations(db, guard, page, limit)
    return ok(
        "Conversations retrieved",
        ConversationListOut(conversations=items, pagination=Pagination.build(page, limit, total)),
    )


@router.get("/conversation/{user_id}", response_model=Envelope[ConversationOut])
def get_conversation(
    user_id: int = Path(..., ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    rows, total = messages.get_conversation(db, guard, user_id, page, limit)
    return ok(
        "Conversation retrieved",
        ConversationOut(messages=rows, pagination=Pagination.build(page, limit, total)),
    )


@router.get("/unread", response_model=Envelope[UnreadCountOut])
def unread_count(guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    return ok("Unread count retrieved", UnreadCountOut(unread_count=messages.unread_count(db, guard)))


@router.post("", response_model=Envelope[MessageSentOut], status_code=status.HTTP_201_CREATED)
def send_message(body: MessageSendIn, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    m = messages.send_message(db, guard, body)
    return ok("Message sent successfully", MessageSentOut(message_id=m.id))


@router.put("/{message_id}/read", response_model=Envelope)
def mark_as_read(
    message_id: int = Path(..., ge=1),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    messages.mark_as_read(db, guard, message_id)
    return ok("Message marked as read")


@router.delete("/{message_id}", response_model=Envelope)
def delete_message(
    message_id: int = Path(..., ge=1),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    messages.delete_message(db, guard, message_id)
    return ok("Message deleted successfully")
