import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from tests.support import DatabaseTestCase

from app.crud import chat as crud_chat
from app.utils.errors import DatabaseError, ValidationError


class TestSaveChatMessage(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        self.user = self.make_user()

    def test_content_is_trimmed(self):
        message = crud_chat.save_chat_message(self.db, self.user.id, "user", "  hello  ", "s1")
        self.assertEqual(message.content, "hello")
        self.assertEqual(message.role, "user")
        self.assertEqual(message.session_id, "s1")
        self.assertIsNotNone(message.timestamp)

    def test_blank_content_rejected(self):
        for content in ("", "   ", "\n\t"):
            with self.assertRaises(ValidationError) as ctx:
                crud_chat.save_chat_message(self.db, self.user.id, "user", content)
            self.assertEqual(ctx.exception.message, "Message content cannot be empty")
        self.assertEqual(crud_chat.get_message_count(self.db, self.user.id), 0)

    def test_invalid_role_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            crud_chat.save_chat_message(self.db, self.user.id, "system", "hello")
        self.assertEqual(ctx.exception.message, "Invalid message role")

    def test_missing_user_rejected(self):
        with self.assertRaises(ValidationError):
            crud_chat.save_chat_message(self.db, None, "user", "hello")

    def test_database_failure_is_wrapped(self):
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))

        with self.assertRaises(DatabaseError) as ctx:
            crud_chat.save_chat_message(db, self.user.id, "user", "hello")

        self.assertEqual(ctx.exception.message, "Failed to save chat message")
        db.rollback.assert_called_once()


class TestChatHistory(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        self.user = self.make_user()
        self.other = self.make_user(email="eve@example.com", name="Eve")
        base = datetime(2025, 9, 17, 9, 0, tzinfo=timezone.utc)

        self.messages = []
        for i, (role, session) in enumerate([
            ("user", "s1"), ("assistant", "s1"), ("user", "s2"), ("assistant", "s2"), ("user", None),
        ]):
            message = crud_chat.save_chat_message(self.db, self.user.id, role, f"message {i}", session)
            message.timestamp = base + timedelta(minutes=i)
            self.messages.append(message)
        self.db.commit()

        crud_chat.save_chat_message(self.db, self.other.id, "user", "not yours", "s1")

    def test_most_recent_first(self):
        history = crud_chat.get_chat_history(self.db, self.user.id)
        self.assertEqual([m.content for m in history],
                         ["message 4", "message 3", "message 2", "message 1", "message 0"])

    def test_reversed_is_chronological(self):
        recent = crud_chat.get_recent_chat_history(self.db, self.user.id, limit=3)
        self.assertEqual([m.content for m in recent], ["message 2", "message 3", "message 4"])

    def test_limit_respected(self):
        self.assertEqual(len(crud_chat.get_chat_history(self.db, self.user.id, limit=2)), 2)
        self.assertEqual(len(crud_chat.get_chat_history(self.db, self.user.id, limit=100)), 5)

    def test_limit_bounds(self):
        for limit in (0, -1, 101):
            with self.assertRaises(ValidationError) as ctx:
                crud_chat.get_chat_history(self.db, self.user.id, limit=limit)
            self.assertEqual(ctx.exception.message, "Limit must be between 1 and 100")

    def test_filter_by_session(self):
        history = crud_chat.get_chat_history(self.db, self.user.id, session_id="s1")
        self.assertEqual([m.content for m in history], ["message 1", "message 0"])

    def test_before_cursor(self):
        cursor = datetime(2025, 9, 17, 9, 2, tzinfo=timezone.utc)
        history = crud_chat.get_chat_history(self.db, self.user.id, before=cursor)
        self.assertEqual([m.content for m in history], ["message 1", "message 0"])

    def test_before_cursor_with_offset(self):
        # 18:02 in Tokyo is 09:02 UTC
        cursor = datetime.fromisoformat("2025-09-17T18:02:00+09:00")
        history = crud_chat.get_chat_history(self.db, self.user.id, before=cursor)
        self.assertEqual(len(history), 2)

    def test_delete_by_session_leaves_others(self):
        deleted = crud_chat.delete_chat_history(self.db, self.user.id, session_id="s1")

        self.assertEqual(deleted, 2)
        remaining = crud_chat.get_chat_history(self.db, self.user.id)
        self.assertEqual({m.session_id for m in remaining}, {"s2", None})
        self.assertEqual(crud_chat.get_message_count(self.db, self.other.id, session_id="s1"), 1)

    def test_delete_all_for_user(self):
        deleted = crud_chat.delete_chat_history(self.db, self.user.id)
        self.assertEqual(deleted, 5)
        self.assertEqual(crud_chat.get_message_count(self.db, self.user.id), 0)
        self.assertEqual(crud_chat.get_message_count(self.db, self.other.id), 1)

    def test_sessions_exclude_null(self):
        crud_chat.save_chat_message(self.db, self.user.id, "user", "blank session id", "")
        sessions = crud_chat.get_chat_sessions(self.db, self.user.id)
        self.assertEqual(sorted(sessions), ["s1", "s2"])

    def test_sessions_most_recent_first(self):
        self.assertEqual(crud_chat.get_chat_sessions(self.db, self.user.id), ["s2", "s1"])

        crud_chat.save_chat_message(self.db, self.user.id, "user", "back to the first thread", "s1")

        self.assertEqual(crud_chat.get_chat_sessions(self.db, self.user.id), ["s1", "s2"])

    def test_read_failures_are_wrapped_and_rolled_back(self):
        reads = [
            (lambda db: crud_chat.get_chat_history(db, self.user.id), "Failed to retrieve chat history"),
            (lambda db: crud_chat.get_chat_sessions(db, self.user.id), "Failed to retrieve chat sessions"),
            (lambda db: crud_chat.get_message_count(db, self.user.id), "Failed to count messages"),
        ]
        for read, message in reads:
            db = MagicMock()
            db.query.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

            with self.assertRaises(DatabaseError) as ctx:
                read(db)

            self.assertEqual(ctx.exception.message, message)
            db.rollback.assert_called_once()

    def test_message_count(self):
        self.assertEqual(crud_chat.get_message_count(self.db, self.user.id), 5)
        self.assertEqual(crud_chat.get_message_count(self.db, self.user.id, session_id="s2"), 2)


if __name__ == '__main__':
    unittest.main()
