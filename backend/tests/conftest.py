"""Shared test fixtures."""

from __future__ import annotations

import io
import json
import os

# Keep the app's default engine off disk during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storylens.accounts import InMemoryAccountDirectory
from storylens.config import Settings
from storylens.database import init_db
from storylens.storage.local import LocalAssetStore


# Canned objects as the analysis stage would describe them

THREE_OBJECTS = [
    ("apple", "A ripe red apple", "An apple rests upon a wooden surface."),
    ("window", "Sunlight streams through pane", "A window fills the room with light."),
    ("cat", "Sleepy orange tabby cat", "A cat naps beside the fruit bowl."),
]

THREE_BOXES = [
    [100, 100, 400, 400],
    [50, 30, 300, 500],
    [600, 200, 900, 700],
]

THREE_OBJECT_CAPTION = (
    'A <mark id="3">sleepy orange cat</mark> dozes near <mark id="1">a shiny red apple</mark> '
    'while <mark id="2">the sunny window</mark> glows.'
)


def analysis_reply(objects=THREE_OBJECTS, label: str = "Kitchen still life") -> str:
    body = {
        "objects": [{"object": o, "description": d, "context": c} for o, d, c in objects],
        "generalLabel": label,
    }
    return f"<details>\nLooked at the scene.\n</details>\n<output>\n```json\n{json.dumps(body)}\n```\n</output>"


def bbox_reply(objects=THREE_OBJECTS, boxes=THREE_BOXES) -> str:
    body = [
        {"object": o, "bbox_2d": box, "description": d, "context": c}
        for (o, d, c), box in zip(objects, boxes)
    ]
    return f"<output>\n```json\n{json.dumps(body)}\n```\n</output>"


def caption_reply(text: str = THREE_OBJECT_CAPTION) -> str:
    return f"<output>{text}</output>"


def make_image_bytes(width: int = 640, height: int = 480, mode: str = "RGB", fmt: str = "PNG") -> bytes:
    fill = {"RGB": (200, 120, 40), "RGBA": (200, 120, 40, 128), "LA": (128, 200), "L": 128, "P": 3}[mode]
    img = Image.new(mode, (width, height), fill)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class ScriptedVisionModel:
    """VisionModel that answers each task with a canned reply and records every call."""

    def __init__(self, replies: dict[str, str | Exception] | None = None) -> None:
        self.replies = dict(replies or {})
        self.calls: list[dict] = []

    @property
    def tasks(self) -> list[str]:
        return [c["task"] for c in self.calls]

    async def complete(self, task, system, user, image_b64=None):
        self.calls.append({"task": task, "system": system, "user": user, "image_b64": image_b64})
        reply = self.replies.get(task, "")
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        anthropic_api_key="",
        tts_base_url="",
        tts_api_key="",
        storage_backend="local",
        local_storage_dir=str(tmp_path / "uploads"),
        database_url="sqlite://",
        default_complexity_tier=2,
        stats_timezone="+08:00",
    )


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(tmp_path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path / "assets")


@pytest.fixture
def accounts() -> InMemoryAccountDirectory:
    return InMemoryAccountDirectory()


@pytest.fixture
def three_object_model() -> ScriptedVisionModel:
    return ScriptedVisionModel(
        {
            "analyze": analysis_reply(),
            "bbox": bbox_reply(),
            "caption": caption_reply(),
        }
    )
