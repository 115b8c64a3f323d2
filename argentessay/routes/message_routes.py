from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from argentessay.schemas.message_schema import (
    SendMessageSchema,
    ReplySchema,
    InboxSchema,
    ConversationSchema,
)
from argentessay.services import message_service as svc
from argentessay.utils.auth_utils import current_user
from argentessay.utils.pagination import paginate_query
from argentessay.utils.response_formatter import success_response

bp = Blueprint("messages", __name__, url_prefix="/api/v1/messages")


def _payload():
    # multipart when attachments are sent, JSON otherwise
    if request.files:
        return request.form.to_dict(), request.files.getlist("attachments")
    return request.get_json() or {}, None


@bp.route("", methods=["POST"])
@jwt_required()
def send():
    user = current_user()
    body, files = _payload()
    data = SendMessageSchema().load(body)
    msg = svc.send_message(sender_id=user.id, files=files, **data)
    return success_response({"message": msg.to_dict()}, status=201)


@bp.route("/inbox", methods=["GET"])
@jwt_required()
def inbox():
    user = current_user()
    args = InboxSchema().load(request.args)
    items, pagination = paginate_query(svc.get_inbox(user.id, args["unread_only"]), args["page"], args["limit"])
    return success_response({
        "messages": [m.to_dict() for m in items],
        "pagination": pagination,
    })


@bp.route("/sent", methods=["GET"])
@jwt_required()
def sent():
    user = current_user()
    args = InboxSchema().load(request.args)
    items, pagination = paginate_query(svc.get_sent(user.id), args["page"], args["limit"])
    return success_response({
        "messages": [m.to_dict() for m in items],
        "pagination": pagination,
    })


@bp.route("/unread-count", methods=["GET"])
@jwt_required()
def unread_count():
    user = current_user()
    return success_response({"unread_count": svc.get_unread_count(user.id)})


@bp.route("/conversation/<string:other_id>", methods=["GET"])
@jwt_required()
def conversation(other_id):
    user = current_user()
    args = ConversationSchema().load(request.args)
    messages = svc.get_conversation(user.id, other_id, args["limit"])
    return success_response({"messages": [m.to_dict() for m in messages]})


@bp.route("/<string:message_id>", methods=["GET"])
@jwt_required()
def thread(message_id):
    user = current_user()
    return success_response({"thread": [m.to_dict() for m in svc.get_thread(user.id, message_id)]})


@bp.route("/<string:message_id>/reply", methods=["POST"])
@jwt_required()
def reply(message_id):
    user = current_user()
    body, files = _payload()
    data = ReplySchema().load(body)
    msg = svc.reply_to_message(user.id, message_id, data["content"], files=files)
    return success_response({"message": msg.to_dict()}, status=201)


@bp.route("/<string:message_id>/read", methods=["PATCH"])
@jwt_required()
def mark_read(message_id):
    user = current_user()
    msg = svc.mark_as_read(user.id, message_id)
    return success_response({"message": msg.to_dict()})


@bp.route("/<string:message_id>", methods=["DELETE"])
@jwt_required()
def delete(message_id):
    user = current_user()
    svc.delete_message(user.id, message_id)
    return success_response(message="Message deleted")
