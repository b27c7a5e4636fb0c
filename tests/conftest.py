import os
import tempfile
from pathlib import Path
from typing import Any, Optional

_TMP = Path(tempfile.mkdtemp(prefix="studybot-tests-"))

# Settings are read at import time
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_KEY_FILE"] = str(_TMP / "jwt_rsa_key.pem")
os.environ["MODE"] = "prod"
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import httpx  # noqa: E402
import pytest  # noqa: E402

from studybot.core.db.base import Base, async_session_maker, engine  # noqa: E402
from studybot.core.errors import UpstreamFailure  # noqa: E402
from studybot.modules.flashcards.generator import get_text_generator  # noqa: E402
import studybot.core.db.schemas  # noqa: E402,F401
from main import app  # noqa: E402


class FakeTextGenerator:
    """Records prompts; returns ``output`` or raises ``error``."""

    def __init__(self, output: Any = None, error: Optional[Exception] = None):
        self.output = output
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> Any:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session(db):
    async with async_session_maker() as s:
        yield s


@pytest.fixture
def fake_generator():
    fake = FakeTextGenerator(
        output='[{"question": "What is photosynthesis?", '
        '"answer": "The process plants use to turn light into chemical energy."}]'
    )
    app.dependency_overrides[get_text_generator] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_text_generator, None)


@pytest.fixture
async def client(db, fake_generator):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def register_and_login(
    client: httpx.AsyncClient, email: str = "student@example.com"
) -> dict[str, str]:
    password = "correct-horse-battery"
    res = await client.post(
        "/v1/auth/register", json={"email": email, "password": password}
    )
    assert res.status_code == 201, res.text
    res = await client.post("/login", json={"username": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['idToken']}"}


@pytest.fixture
async def auth_headers(client):
    return await register_and_login(client)


async def set_plan(client: httpx.AsyncClient, headers: dict[str, str], plan: str):
    res = await client.put("/v1/profile/plan", json={"plan_type": plan}, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def upstream_failure(detail: str = "Model HTTP 503: overloaded") -> UpstreamFailure:
    return UpstreamFailure(detail=detail, retryable=True)
