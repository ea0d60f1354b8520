"""Shared fixtures: sqlite record store, mocked Supabase endpoints, API client."""

import json
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from backend.app.core.database import create_tables, get_db
from backend.app.core.security import create_access_token
from backend.app.main import app
from backend.app.routers.auth import get_auth
from backend.app.routers.journal import get_storage
from backend.app.services.supabase import ImageStorage, Session, SupabaseAuth

SUPABASE_URL = "https://project.supabase.test"
USER = Session(user_id="user-1", email="trader@example.com", access_token="provider-token-1")
OTHER_USER = Session(user_id="user-2", email="other@example.com", access_token="provider-token-2")


@pytest.fixture
async def session_factory(tmp_path: Path):
    """Fresh sqlite database with the trades table."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class FakeSupabase:
    """httpx.MockTransport handler emulating Supabase Auth + Storage."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.objects: dict[str, bytes] = {}
        self.fail_upload = False
        self.fail_sign = False
        self.fail_delete = False
        self.fail_sign_in = False
        self.fail_sign_out = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/auth/v1/token":
            if self.fail_sign_in:
                return httpx.Response(400, json={"error_description": "Invalid login credentials"})
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "access_token": "provider-token-1",
                    "token_type": "bearer",
                    "user": {"id": USER.user_id, "email": body["email"]},
                },
            )
        if path == "/auth/v1/logout":
            if self.fail_sign_out:
                return httpx.Response(500, json={"msg": "boom"})
            return httpx.Response(204)

        if path.startswith("/storage/v1/object/sign/"):
            if self.fail_sign:
                return httpx.Response(400, json={"message": "Object not found"})
            key = path.removeprefix("/storage/v1/object/sign/")
            return httpx.Response(200, json={"signedURL": f"/object/sign/{key}?token=signed"})

        if path.startswith("/storage/v1/object/"):
            if request.method == "POST":
                if self.fail_upload:
                    return httpx.Response(413, json={"message": "Payload too large"})
                key = path.removeprefix("/storage/v1/object/")
                self.objects[key] = request.content
                return httpx.Response(200, json={"Key": key})
            if request.method == "DELETE":
                if self.fail_delete:
                    return httpx.Response(500, json={"message": "storage unavailable"})
                bucket = path.removeprefix("/storage/v1/object/")
                for prefix in json.loads(request.content)["prefixes"]:
                    self.objects.pop(f"{bucket}/{prefix}", None)
                return httpx.Response(200, json=[])

        return httpx.Response(404, json={"message": f"unexpected {request.method} {path}"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def storage(supabase: FakeSupabase) -> ImageStorage:
    return ImageStorage(
        USER.access_token,
        bucket="trade-images",
        base_url=SUPABASE_URL,
        anon_key="anon-key",
        client=supabase.client(),
    )


@pytest.fixture
def auth(supabase: FakeSupabase) -> SupabaseAuth:
    return SupabaseAuth(base_url=SUPABASE_URL, anon_key="anon-key", client=supabase.client())


@pytest.fixture
async def api(session_factory, supabase: FakeSupabase, auth: SupabaseAuth):
    """ASGI client with the database and Supabase collaborators overridden."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_storage():
        yield ImageStorage(
            USER.access_token,
            bucket="trade-images",
            base_url=SUPABASE_URL,
            anon_key="anon-key",
            client=supabase.client(),
        )

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = _get_storage
    app.dependency_overrides[get_auth] = lambda: auth

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(USER)}"}


@pytest.fixture
def other_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token(OTHER_USER)}"}
