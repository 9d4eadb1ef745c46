import asyncio
import os
import tempfile
import uuid
from datetime import timedelta
from types import SimpleNamespace

# Configure the app for tests before anything imports hangoutz.config
_db_dir = tempfile.mkdtemp(prefix="hangoutz-tests-")
DB_PATH = os.path.join(_db_dir, "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["ENVIRONMENT"] = "test"
os.environ["WS_HEARTBEAT_INTERVAL"] = "0"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from starlette.websockets import WebSocketDisconnect

from hangoutz.core.security import create_access_token
from hangoutz.core.websocket.websocket_manager import manager
from hangoutz.database import Base
from hangoutz.main import app
from hangoutz.models import Event, EventParticipant, User
from hangoutz.services import otp_service
from hangoutz.utils.time_utils import utcnow

sync_engine = create_engine(f"sqlite:///{DB_PATH}")


@pytest.fixture(autouse=True)
def reset_state():
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    otp_service.pending_otps.clear()
    manager.connections.clear()
    manager.user_connections.clear()
    manager.rooms.clear()
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make_user(name="Test User", **fields):
        counter["n"] += 1
        user = User(
            id=str(uuid.uuid4()),
            phone=f"+9199{counter['n']:08d}",
            name=name,
            photo_url=fields.pop("photo_url", f"https://example.com/{counter['n']}.jpg"),
            **fields,
        )
        with Session(sync_engine, expire_on_commit=False) as session:
            session.add(user)
            session.commit()
        return user

    return _make_user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers():
    return auth_headers


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Sunset chess by the lake",
        "description": "Bring a board, we will play blitz until dark.",
        "location": "Telibandha Lake, Raipur",
        "date_time": (utcnow() + timedelta(days=2)).isoformat(),
        "category": "♟️ Chess",
        "coordinates": {"lat": 21.2514, "lng": 81.6296},
        "tags": ["chess", "outdoors"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def insert_event():
    """Insert an event row directly, bypassing the future-date check."""

    def _insert_event(host, date_time, status="upcoming", participants=()):
        event_id = str(uuid.uuid4())
        with sync_engine.begin() as conn:
            conn.execute(Event.__table__.insert().values(
                id=event_id,
                title="Morning run",
                description="An easy five kilometre loop.",
                location="Marine Drive, Raipur",
                lat=21.25,
                lng=81.63,
                date_time=date_time,
                category="🏃 Sports",
                image_url="https://picsum.photos/seed/1/800/400",
                host_id=host.id,
                host_name=host.name,
                host_photo_url=host.photo_url,
                max_participants=None,
                tags=[],
                is_featured=False,
                status=status,
                created_at=utcnow(),
                updated_at=utcnow(),
            ))
            for user in (host, *participants):
                conn.execute(EventParticipant.__table__.insert().values(
                    event_id=event_id, user_id=user.id, joined_at=utcnow(),
                ))
        return event_id

    return _insert_event


class FakeWebSocket:
    """Stands in for a Starlette WebSocket, recording what is sent to it."""

    def __init__(self, fail_on_send=False, token=None, frames=(), block=False):
        self.sent = []
        self.accepted = False
        self.closed = False
        self.close_code = None
        self.fail_on_send = fail_on_send
        self.query_params = {"token": token} if token else {}
        self.headers = {}
        # Incoming text frames; once they run out the client hangs up, or waits if `block` is set
        self.frames = list(frames)
        self.block = block
        self.waiting = False

    @property
    def client_state(self):
        return SimpleNamespace(name="DISCONNECTED" if self.closed else "CONNECTED")

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail_on_send:
            raise RuntimeError("socket is gone")
        self.sent.append(message)

    async def receive_text(self):
        if self.frames:
            return self.frames.pop(0)
        if self.block:
            self.waiting = True
            await asyncio.Event().wait()
        raise WebSocketDisconnect(code=1000)

    async def close(self, code=1000):
        self.closed = True
        self.close_code = code

    def of_type(self, event_type):
        return [m for m in self.sent if m["type"] == event_type]


@pytest.fixture
def connect_socket():
    """Register a fake socket for a user on the shared connection manager."""

    def _connect(user_id, user_name=None, **kwargs):
        websocket = FakeWebSocket(**kwargs)
        connection = asyncio.run(manager.connect(websocket, user_id, user_name))
        return websocket, connection

    return _connect
