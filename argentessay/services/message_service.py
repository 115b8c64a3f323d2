import logging

from sqlalchemy import or_, and_

from argentessay.extensions import db
from argentessay.models.message import Message
from argentessay.models.user import User
from argentessay.services.upload_service import discard_files, save_uploaded_files
from argentessay.utils.db_utils import commit
from argentessay.utils.exceptions import Forbidden, NotFound, PersistenceError, ValidationFailed

logger = logging.getLogger(__name__)


def get_message_for(user_id, message_id):
    msg = db.session.get(Message, message_id)
    if not msg or msg.is_deleted:
        raise NotFound("Message not found")
    if not msg.involves(user_id):
        raise Forbidden("You are not part of this conversation")
    return msg


def send_message(sender_id, recipient_id, subject, content, priority="normal",
                 message_type="general", related_job_id=None, parent_id=None, files=None):
    if sender_id == recipient_id:
        raise ValidationFailed("Cannot send a message to yourself")
    if not db.session.get(User, recipient_id):
        raise NotFound("Recipient not found")

    subject = (subject or "").strip()
    if not subject:
        raise ValidationFailed("Message subject is required", details={"field": "subject"})
    if not content:
        raise ValidationFailed("Message content is required", details={"field": "content"})

    if parent_id:
        parent = get_message_for(sender_id, parent_id)
        if not parent.involves(recipient_id):
            raise ValidationFailed(
                "Reply must go to the other party of the conversation",
                details={"parent_id": parent_id},
            )

    attachments = save_uploaded_files(files, "messages", sender_id) if files else []

    msg = Message(
        sender_id=sender_id,
        recipient_id=recipient_id,
        subject=subject,
        content=content,
        attachments=attachments,
        priority=priority,
        message_type=message_type,
        related_job_id=related_job_id,
        parent_id=parent_id,
    )
    db.session.add(msg)
    try:
        commit()
    except PersistenceError:
        discard_files(attachments)
        raise
    logger.info("Message %s sent from %s to %s", msg.id, sender_id, recipient_id)
    return msg


def reply_to_message(user_id, message_id, content, files=None):
    parent = get_message_for(user_id, message_id)
    other = parent.sender_id if parent.recipient_id == user_id else parent.recipient_id
    subject = parent.subject if parent.subject.startswith("Re: ") else f"Re: {parent.subject}"
    return send_message(
        sender_id=user_id,
        recipient_id=other,
        subject=subject,
        content=content,
        priority=parent.priority,
        message_type=parent.message_type,
        related_job_id=parent.related_job_id,
        parent_id=parent.id,
        files=files,
    )


def mark_as_read(user_id, message_id):
    msg = get_message_for(user_id, message_id)
    if msg.recipient_id != user_id:
        raise Forbidden("Only the recipient can mark a message as read")
    msg.mark_as_read()
    commit()
    return msg


def delete_message(user_id, message_id):
    msg = get_message_for(user_id, message_id)
    msg.soft_delete()
    commit()
    return msg


def get_unread_count(user_id):
    return Message.query.filter_by(
        recipient_id=user_id, is_read=False, is_deleted=False
    ).count()


def get_inbox(user_id, unread_only=False):
    q = Message.query.filter_by(recipient_id=user_id, is_deleted=False)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Message.created_at.desc())


def get_sent(user_id):
    return (
        Message.query.filter_by(sender_id=user_id, is_deleted=False)
        .order_by(Message.created_at.desc())
    )


def get_conversation(user1_id, user2_id, limit=50):
    return (
        Message.query
        .filter(
            or_(
                and_(Message.sender_id == user1_id, Message.recipient_id == user2_id),
                and_(Message.sender_id == user2_id, Message.recipient_id == user1_id),
            ),
            Message.is_deleted.is_(False),
        )
        .order_by(Message.created_at.desc())
        .limit(limit)
        .all()
    )


def get_thread(user_id, message_id):
    root = get_message_for(user_id, message_id)
    while root.parent is not None and not root.parent.is_deleted:
        root = root.parent

    thread, frontier = [root], [root]
    while frontier:
        children = [
            r for m in frontier for r in sorted(m.replies, key=lambda x: x.created_at)
            if not r.is_deleted
        ]
        thread.extend(children)
        frontier = children
    return thread
