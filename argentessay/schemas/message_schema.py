from marshmallow import fields, validate

from argentessay.models.message import PRIORITIES, MESSAGE_TYPES
from argentessay.schemas.user_schema import BaseSchema


class SendMessageSchema(BaseSchema):
    recipient_id = fields.String(required=True)
    subject = fields.String(required=True, validate=validate.Length(min=1, max=255))
    content = fields.String(required=True, validate=validate.Length(min=1))
    priority = fields.String(load_default="normal", validate=validate.OneOf(PRIORITIES))
    message_type = fields.String(load_default="general", validate=validate.OneOf(MESSAGE_TYPES))
    related_job_id = fields.String()


class ReplySchema(BaseSchema):
    content = fields.String(required=True, validate=validate.Length(min=1))


class InboxSchema(BaseSchema):
    unread_only = fields.Boolean(load_default=False)
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))


class ConversationSchema(BaseSchema):
    limit = fields.Integer(load_default=50, validate=validate.Range(min=1, max=200))
