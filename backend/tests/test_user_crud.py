import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from tests.support import DatabaseTestCase

from app.crud import user as crud_user
from app.crud import chat as crud_chat
from app.models.user import User
from app.utils.errors import ConflictError, DatabaseError
from app.utils.utils import verify_password


class TestUserCrud(DatabaseTestCase):

    def test_create_user_hashes_password(self):
        user = self.make_user(password="secret123")

        self.assertIsNotNone(user.id)
        self.assertNotEqual(user.password, "secret123")
        self.assertTrue(verify_password("secret123", user.password))
        self.assertFalse(verify_password("wrong-pass", user.password))
        self.assertIsNotNone(user.created_at)

    def test_duplicate_email_conflicts(self):
        self.make_user(email="bob@example.com")
        with self.assertRaises(ConflictError) as ctx:
            self.make_user(email="bob@example.com", name="Other Bob")
        self.assertEqual(ctx.exception.message, "User already exists")
        self.assertEqual(self.db.query(User).count(), 1)

    def test_concurrent_registration_conflicts(self):
        # Both requests pass the lookup before either commits; the unique index decides
        with patch("app.crud.user.get_user_by_email", return_value=None):
            self.make_user(email="race@example.com")
            with self.assertRaises(ConflictError):
                self.make_user(email="race@example.com", name="Second")

        self.assertEqual(self.db.query(User).filter(User.email == "race@example.com").count(), 1)
        self.make_user(email="after@example.com")
        self.assertEqual(self.db.query(User).count(), 2)

    def test_lookup_failure_rolls_back(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with self.assertRaises(DatabaseError) as ctx:
            crud_user.get_user_by_email(db, "alice@example.com")

        self.assertEqual(ctx.exception.message, "Failed to retrieve user by email")
        db.rollback.assert_called_once()

    def test_lookup_by_email_and_id(self):
        user = self.make_user(email="carol@example.com")
        self.assertEqual(crud_user.get_user_by_email(self.db, "carol@example.com").id, user.id)
        self.assertEqual(crud_user.get_user(self.db, user.id).email, "carol@example.com")
        self.assertIsNone(crud_user.get_user_by_email(self.db, "nobody@example.com"))

    def test_delete_user_removes_history(self):
        user = self.make_user()
        other = self.make_user(email="dave@example.com")
        crud_chat.save_chat_message(self.db, user.id, "user", "hello", "s1")
        crud_chat.save_chat_message(self.db, other.id, "user", "hi", "s1")

        crud_user.delete_user(self.db, user.id)

        self.assertIsNone(crud_user.get_user(self.db, user.id))
        self.assertEqual(crud_chat.get_message_count(self.db, user.id), 0)
        self.assertEqual(crud_chat.get_message_count(self.db, other.id), 1)


if __name__ == '__main__':
    unittest.main()
