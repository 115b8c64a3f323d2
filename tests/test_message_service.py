"""
Messaging service tests: send/reply threading, read and delete permissions,
inbox and conversation filters.
"""

import io
import os
from datetime import datetime, timedelta

import pytest
from werkzeug.datastructures import FileStorage

from argentessay.services import message_service as svc
from argentessay.utils.exceptions import Forbidden, NotFound, PersistenceError, ValidationFailed


@pytest.fixture
def message(writer, admin):
    return svc.send_message(admin.id, writer.id, "  Welcome  ", "Glad to have you", priority="high")


class TestSend:

    def test_send_trims_subject(self, message):
        assert message.subject == "Welcome"
        assert message.is_read is False
        assert message.attachments == []

    def test_cannot_message_self(self, writer):
        with pytest.raises(ValidationFailed):
            svc.send_message(writer.id, writer.id, "Hi", "me")

    def test_unknown_recipient(self, writer):
        with pytest.raises(NotFound):
            svc.send_message(writer.id, "usr-missing", "Hi", "there")

    def test_blank_subject(self, writer, admin):
        with pytest.raises(ValidationFailed):
            svc.send_message(writer.id, admin.id, "   ", "body")

    def test_reply_goes_to_other_party(self, message, writer, admin):
        reply = svc.reply_to_message(writer.id, message.id, "Thank you")
        assert reply.recipient_id == admin.id
        assert reply.subject == "Re: Welcome"
        assert reply.parent_id == message.id
        assert reply.priority == "high"

    def test_reply_does_not_stack_prefix(self, message, writer, admin):
        reply = svc.reply_to_message(writer.id, message.id, "Thanks")
        again = svc.reply_to_message(admin.id, reply.id, "Anytime")
        assert again.subject == "Re: Welcome"
        assert again.recipient_id == writer.id

    def test_outsider_cannot_reply(self, message, other_writer):
        with pytest.raises(Forbidden):
            svc.reply_to_message(other_writer.id, message.id, "hi")

    def test_unknown_parent(self, writer, admin):
        with pytest.raises(NotFound):
            svc.send_message(writer.id, admin.id, "Hi", "there", parent_id="msg-missing")

    def test_outsider_cannot_thread_onto_message(self, message, other_writer, admin):
        with pytest.raises(Forbidden):
            svc.send_message(other_writer.id, admin.id, "Re: Welcome", "me too", parent_id=message.id)

    def test_parent_must_link_both_parties(self, message, writer, other_writer):
        with pytest.raises(ValidationFailed):
            svc.send_message(writer.id, other_writer.id, "Fwd", "look", parent_id=message.id)

    def test_attachments_removed_when_save_fails(self, app, writer, admin, monkeypatch):
        def failing_commit():
            raise PersistenceError()

        monkeypatch.setattr(svc, "commit", failing_commit)
        upload = FileStorage(stream=io.BytesIO(b"notes"), filename="notes.txt")
        with pytest.raises(PersistenceError):
            svc.send_message(writer.id, admin.id, "Draft", "attached", files=[upload])

        folder = os.path.join(app.config["UPLOAD_FOLDER"], "messages", writer.id)
        assert not os.path.isdir(folder) or os.listdir(folder) == []


class TestReadAndDelete:

    def test_mark_as_read_is_idempotent(self, message, writer):
        svc.mark_as_read(writer.id, message.id)
        first_read_at = message.read_at
        svc.mark_as_read(writer.id, message.id)
        assert message.is_read is True
        assert message.read_at == first_read_at

    def test_only_recipient_marks_read(self, message, admin):
        with pytest.raises(Forbidden):
            svc.mark_as_read(admin.id, message.id)

    def test_soft_delete_hides_message(self, message, writer):
        svc.delete_message(writer.id, message.id)
        assert message.is_deleted is True
        with pytest.raises(NotFound):
            svc.get_message_for(writer.id, message.id)
        assert svc.get_unread_count(writer.id) == 0


class TestQueries:

    def test_unread_count(self, message, writer, admin):
        svc.send_message(admin.id, writer.id, "Second", "body")
        assert svc.get_unread_count(writer.id) == 2
        svc.mark_as_read(writer.id, message.id)
        assert svc.get_unread_count(writer.id) == 1

    def test_inbox_unread_only(self, message, writer, admin):
        other = svc.send_message(admin.id, writer.id, "Second", "body")
        svc.mark_as_read(writer.id, message.id)
        unread = svc.get_inbox(writer.id, unread_only=True).all()
        assert [m.id for m in unread] == [other.id]
        assert svc.get_inbox(writer.id).count() == 2

    def test_conversation_newest_first_and_limited(self, db_session, writer, admin, other_writer):
        sent = []
        for i in range(3):
            m = svc.send_message(admin.id, writer.id, f"Note {i}", "body")
            m.created_at = datetime.utcnow() - timedelta(minutes=10 - i)
            sent.append(m)
        svc.send_message(admin.id, other_writer.id, "Elsewhere", "body")
        db_session.commit()

        convo = svc.get_conversation(writer.id, admin.id)
        assert [m.id for m in convo] == [sent[2].id, sent[1].id, sent[0].id]
        assert len(svc.get_conversation(writer.id, admin.id, limit=2)) == 2

    def test_thread(self, message, writer, admin):
        reply = svc.reply_to_message(writer.id, message.id, "Thanks")
        svc.reply_to_message(admin.id, reply.id, "Anytime")
        thread = svc.get_thread(writer.id, reply.id)
        assert thread[0].id == message.id
        assert [m.content for m in thread] == ["Glad to have you", "Thanks", "Anytime"]
