# realestate/schemas/message.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import BaseSchema
from .common import Pagination


class MessageSendIn(BaseSchema):
    receiver_id: int = Field(..., ge=1)
    message: str = Field(..., min_length=1)
    post_id: Optional[int] = Field(None, ge=1)
    subject: Optional[str] = Field(None, max_length=255)


class MessageSentOut(BaseSchema):
    message_id: int


class MessageOut(BaseSchema):
    id: int
    sender_id: int
    receiver_id: int
    post_id: Optional[int] = None
    post_title: Optional[str] = None
    subject: Optional[str] = None
    body: str
    is_read: bool
    created_at: datetime


class ConversationItemOut(MessageOut):
    other_user_id: int
    other_user: str
    other_first_name: Optional[str] = None
    other_last_name: Optional[str] = None
    unread_count: int = 0


class ConversationListOut(BaseSchema):
    conversations: List[ConversationItemOut]
    pagination: Pagination


class ConversationMessageOut(MessageOut):
    sender_username: str
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None


class ConversationOut(BaseSchema):
    messages: List[ConversationMessageOut]
    pagination: Pagination


class UnreadCountOut(BaseSchema):
    unread_count: int
