# realestate/services/messages.py
"""Private messages and the conversations derived from them.

A conversation is the unordered pair of participants, canonicalised as
``(min(sender, receiver), max(sender, receiver))``. It is never stored:
listing groups messages by that pair in the database with a window
function, so which side sent a given row does not matter.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.orm import Session

from realestate.core.errors import Forbidden, InvalidInput, NotFound
from realestate.core.guard import Guard, Principal
from realestate.models.message import Message
from realestate.models.post import Post, PostStatus
from realestate.models.user import User, UserStatus
from realestate.schemas.message import ConversationItemOut, ConversationMessageOut, MessageSendIn

logger = logging.getLogger(__name__)


def conversation_key(sender_id: int, receiver_id: int) -> Tuple[int, int]:
    return (min(sender_id, receiver_id), max(sender_id, receiver_id))


def _pair_columns():
    lower = case((Message.sender_id < Message.receiver_id, Message.sender_id), else_=Message.receiver_id)
    upper = case((Message.sender_id < Message.receiver_id, Message.receiver_id), else_=Message.sender_id)
    return lower, upper


def _require_messaging(guard: Guard) -> Principal:
    principal = guard.require_approved()
    if not guard.can_send_messages():
        raise Forbidden("Only approved buyers and sellers can access messages")
    return principal


def _between(a: int, b: int):
    return or_(
        and_(Message.sender_id == a, Message.receiver_id == b),
        and_(Message.sender_id == b, Message.receiver_id == a),
    )


def send_message(db: Session, guard: Guard, payload: MessageSendIn) -> Message:
    principal = guard.require_approved()
    if not guard.can_send_messages():
        raise Forbidden("Only approved buyers and sellers can send messages")

    if payload.receiver_id == principal.id:
        raise InvalidInput("Cannot send message to yourself")

    receiver = db.get(User, payload.receiver_id)
    if receiver is None:
        raise NotFound("Receiver not found")
    if receiver.status != UserStatus.APPROVED:
        raise InvalidInput("Cannot send message to non-approved user")

    if payload.post_id is not None:
        post_id = db.scalar(
            select(Post.id).where(Post.id == payload.post_id, Post.status == PostStatus.ACTIVE)
        )
        if post_id is None:
            raise NotFound("Post not found or inactive")

    message = Message(
        sender_id=principal.id,
        receiver_id=receiver.id,
        post_id=payload.post_id,
        subject=payload.subject,
        body=payload.message,
        is_read=False,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("message sent message_id=%s sender=%s receiver=%s", message.id, principal.id, receiver.id)
    return message


def list_conversations(db: Session, guard: Guard, page: int, limit: int) -> Tuple[List[ConversationItemOut], int]:
    """Latest message of every conversation the principal takes part in, newest first."""
    principal = _require_messaging(guard)
    me = principal.id

    lower, upper = _pair_columns()
    ranked = (
        select(
            Message.id.label("id"),
            func.row_number()
            .over(
                partition_by=(lower, upper),
                order_by=(Message.created_at.desc(), Message.id.desc()),
            )
            .label("rn"),
        )
        .where(or_(Message.sender_id == me, Message.receiver_id == me))
        .subquery()
    )
    latest = select(Message).join(ranked, ranked.c.id == Message.id).where(ranked.c.rn == 1)

    total = db.scalar(select(func.count()).select_from(latest.subquery()))
    rows = db.scalars(
        latest.order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    # unread messages per counterpart, i.e. per conversation
    unread = dict(
        db.execute(
            select(Message.sender_id, func.count(Message.id))
            .where(Message.receiver_id == me, Message.is_read.is_(False))
            .group_by(Message.sender_id)
        ).all()
    )

    items: List[ConversationItemOut] = []
    for m in rows:
        other = m.receiver if m.sender_id == me else m.sender
        items.append(
            ConversationItemOut(
                id=m.id,
                sender_id=m.sender_id,
                receiver_id=m.receiver_id,
                post_id=m.post_id,
                post_title=m.post.title if m.post else None,
                subject=m.subject,
                body=m.body,
                is_read=m.is_read,
                created_at=m.created_at,
                other_user_id=other.id,
                other_user=other.username,
                other_first_name=other.first_name,
                other_last_name=other.last_name,
                unread_count=unread.get(other.id, 0),
            )
        )
    return items, total


def get_conversation(
    db: Session, guard: Guard, other_user_id: int, page: int, limit: int
) -> Tuple[List[ConversationMessageOut], int]:
    """
    One page of the conversation with ``other_user_id``.
    The page is the newest ``limit`` messages (offset by page), returned in
    chronological order. Afterwards every unread message from the other user
    to the principal is marked read; the returned page still shows the read
    state from before the call.
    """
    principal = _require_messaging(guard)
    me = principal.id
    between = _between(me, other_user_id)

    total = db.scalar(select(func.count(Message.id)).where(between))
    rows = db.scalars(
        select(Message)
        .where(between)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    messages = [
        ConversationMessageOut(
            id=m.id,
            sender_id=m.sender_id,
            receiver_id=m.receiver_id,
            post_id=m.post_id,
            post_title=m.post.title if m.post else None,
            subject=m.subject,
            body=m.body,
            is_read=m.is_read,
            created_at=m.created_at,
            sender_username=m.sender.username,
            sender_first_name=m.sender.first_name,
            sender_last_name=m.sender.last_name,
        )
        for m in reversed(rows)
    ]

    result = db.execute(
        update(Message)
        .where(
            Message.sender_id == other_user_id,
            Message.receiver_id == me,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    db.commit()
    if result.rowcount:
        logger.info("marked %d messages read user_id=%s other=%s", result.rowcount, me, other_user_id)

    return messages, total


def unread_count(db: Session, guard: Guard) -> int:
    principal = _require_messaging(guard)
    return db.scalar(
        select(func.count(Message.id)).where(
            Message.receiver_id == principal.id, Message.is_read.is_(False)
        )
    )


def mark_as_read(db: Session, guard: Guard, message_id: int) -> None:
    principal = guard.require_approved()
    result = db.execute(
        update(Message)
        .where(Message.id == message_id, Message.receiver_id == principal.id)
        .values(is_read=True)
    )
    if result.rowcount == 0:
        # same answer for missing and not-yours
        db.rollback()
        raise NotFound("Message not found or not authorized")
    db.commit()


def delete_message(db: Session, guard: Guard, message_id: int) -> None:
    principal = guard.require_approved()
    message: Optional[Message] = db.get(Message, message_id)
    if message is None:
        raise NotFound("Message not found")

    if message.sender_id != principal.id and not principal.is_staff:
        if message.receiver_id == principal.id:
            raise Forbidden("Cannot delete this message")
        # outsiders learn nothing about the message
        raise NotFound("Message not found")

    db.delete(message)
    db.commit()
    logger.info("message deleted message_id=%s by=%s", message_id, principal.id)
