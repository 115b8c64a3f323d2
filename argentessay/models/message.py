from argentessay.extensions import db
from datetime import datetime
import uuid

PRIORITIES = ("low", "normal", "high", "urgent")
MESSAGE_TYPES = ("general", "job_related", "system", "support")

def gen_msg_id():
    return f"msg-{str(uuid.uuid4())[:8]}"

class Message(db.Model):
    __tablename__ = "messages"

    __table_args__ = (
        db.Index("idx_messages_recipient_read", "recipient_id", "is_read", "created_at"),
        db.Index("idx_messages_sender_created", "sender_id", "created_at"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_msg_id)
    sender_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    recipient_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    subject = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    attachments = db.Column(db.JSON, default=list)
    is_read = db.Column(db.Boolean, default=False)
    read_at = db.Column(db.DateTime)
    priority = db.Column(db.String(20), default="normal")
    related_job_id = db.Column(db.String(50), index=True)
    message_type = db.Column(db.String(20), default="general")
    parent_id = db.Column(db.String(50), db.ForeignKey("messages.id"), index=True)
    is_deleted = db.Column(db.Boolean, default=False)
    deleted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sender = db.relationship("User", foreign_keys=[sender_id], backref="sent_messages", lazy=True)
    recipient = db.relationship("User", foreign_keys=[recipient_id], backref="received_messages", lazy=True)
    parent = db.relationship("Message", remote_side=[id], backref="replies", lazy=True)

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.utcnow()
        return self

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()
        return self

    def involves(self, user_id):
        return user_id in (self.sender_id, self.recipient_id)

    def to_dict(self):
        return {
            "id": self.id,
            "sender": {"id": self.sender_id, "name": self.sender.full_name if self.sender else None},
            "recipient": {"id": self.recipient_id, "name": self.recipient.full_name if self.recipient else None},
            "subject": self.subject,
            "content": self.content,
            "attachments": self.attachments or [],
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() + "Z" if self.read_at else None,
            "priority": self.priority,
            "message_type": self.message_type,
            "related_job_id": self.related_job_id,
            "parent_id": self.parent_id,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
