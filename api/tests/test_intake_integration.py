from __future__ import annotations

import asyncio
import os
import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import asyncpg  # type: ignore[import-untyped]
import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import app
from app.services.identity import get_identity_verifier
from app.services.repository import get_repository

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "init_schema.py"

QUALIFICATION = {
    "email": "integration@example.com",
    "phone": "+15550001111",
    "redditUsername": "validuser",
}


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("FDU_TEST_DATABASE_URL")
    if not url:
        pytest.skip("integration tests require FDU_TEST_DATABASE_URL")
    return url


async def _reset_schema(database_url: str) -> None:
    sql = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), "--drop"],
        check=True,
        capture_output=True,
        text=True,
    ).stdout
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(sql)
    finally:
        await conn.close()


async def _fetch_applicant(database_url: str, email: str) -> asyncpg.Record | None:
    conn = await asyncpg.connect(database_url)
    try:
        return await conn.fetchrow("select * from applicants where email = $1", email)
    finally:
        await conn.close()


@pytest.fixture
def db_client(database_url: str, fake_verifier) -> Iterator[TestClient]:
    asyncio.run(_reset_schema(database_url))
    get_settings.cache_clear()
    get_repository.cache_clear()
    app.dependency_overrides[get_identity_verifier] = lambda: fake_verifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    get_repository.cache_clear()
    get_settings.cache_clear()


def test_qualification_persists_and_is_visible_to_existence_check(db_client: TestClient, database_url: str) -> None:
    before = db_client.post(
        "/api/check-user-exists",
        json={"email": QUALIFICATION["email"], "phone": QUALIFICATION["phone"]},
    )
    assert before.json() == {"success": True, "userExists": False}

    response = db_client.post("/api/social-qualify-form", json=QUALIFICATION)
    assert response.status_code == 200

    after = db_client.post(
        "/api/check-user-exists",
        json={"email": QUALIFICATION["email"], "phone": QUALIFICATION["phone"]},
    )
    assert after.json() == {"success": True, "userExists": True}

    row = asyncio.run(_fetch_applicant(database_url, QUALIFICATION["email"]))
    assert row is not None
    assert row["identity_verified"] is True
    assert row["twitter_username"] is None
    assert row["youtube_username"] is None
    assert row["facebook_username"] is None


def test_duplicate_qualification_is_rejected(db_client: TestClient) -> None:
    assert db_client.post("/api/social-qualify-form", json=QUALIFICATION).status_code == 200

    response = db_client.post("/api/social-qualify-form", json={**QUALIFICATION, "redditUsername": "other"})

    assert response.status_code == 400
    assert response.json()["message"] == "A user with this email and phone number combination already exists."


def test_contractor_request_flow(db_client: TestClient) -> None:
    payload = {
        "email": QUALIFICATION["email"],
        "companySlug": "silicon-valley-consulting",
        "companyName": "Silicon Valley Consulting",
    }

    missing = db_client.post("/api/contractor-request", json=payload)
    assert missing.status_code == 404

    assert db_client.post("/api/social-qualify-form", json=QUALIFICATION).status_code == 200

    first = db_client.post("/api/contractor-request", json=payload)
    second = db_client.post("/api/contractor-request", json=payload)

    assert first.status_code == 200
    assert second.status_code == 400
