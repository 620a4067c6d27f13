import json
import os
import unittest

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SQLALCHEMY_DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from langchain_core.messages import AIMessageChunk
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.crud import user as crud_user
from app.schemas.user import UserCreate

# Use an in-memory SQLite DB shared by every connection
engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class DatabaseTestCase(unittest.TestCase):
    def setUp(self):
        Base.metadata.create_all(bind=engine)
        self.db = TestingSessionLocal()

    def tearDown(self):
        self.db.close()
        Base.metadata.drop_all(bind=engine)

    def make_user(self, email="alice@example.com", name="Alice", password="secret123"):
        return crud_user.create_user(self.db, UserCreate(name=name, email=email, password=password))


class ApiTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()

        def override_get_db():
            db = TestingSessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        super().tearDown()

    def register(self, email="alice@example.com", name="Alice", password="secret123"):
        return self.client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )

    def login(self, email="alice@example.com", password="secret123"):
        return self.client.post("/api/auth/login/json", json={"email": email, "password": password})

    def signed_in_user_id(self, email="alice@example.com"):
        self.register(email=email)
        response = self.login(email=email)
        self.assertEqual(response.status_code, 200)
        return response.json()["user_id"]


class ScriptedChatModel:
    """Replays one list of chunks per model round. Exceptions in a round are raised mid-stream."""

    def __init__(self, rounds):
        self.rounds = list(rounds)
        self.calls = []
        self.bound_tools = None

    def bind_tools(self, tools):
        self.bound_tools = tools
        return self

    async def astream(self, messages):
        self.calls.append(list(messages))
        chunks = self.rounds.pop(0) if self.rounds else []
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


def text_round(*parts):
    return [AIMessageChunk(content=part) for part in parts]


def tool_round(name, args, call_id="call_1"):
    return [AIMessageChunk(
        content="",
        tool_call_chunks=[{"name": name, "args": json.dumps(args), "id": call_id, "index": 0}],
    )]


def parse_sse(body):
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]
