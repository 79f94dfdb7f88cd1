from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime, timezone

import pytest

os.environ.setdefault("FDU_ENVIRONMENT", "test")
os.environ.setdefault("FDU_OTEL_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.services.identity import VerificationOutcome, get_identity_verifier  # noqa: E402
from app.services.repository import (  # noqa: E402
    ApplicantRecord,
    ContractorRequestRecord,
    DuplicateApplicantError,
    DuplicateContractorRequestError,
    get_repository,
)


class FakeIntakeRepository:
    def __init__(self) -> None:
        self.applicants: list[ApplicantRecord] = []
        self.contractor_requests: list[ContractorRequestRecord] = []
        self.fail_with: Exception | None = None
        self.insert_returns_nothing = False

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def applicant_exists(self, email: str, phone: str) -> bool:
        self._maybe_fail()
        return any(row.email == email and row.phone == phone for row in self.applicants)

    async def insert_applicant(
        self,
        *,
        email: str,
        phone: str,
        reddit_username: str,
        twitter_username: str | None,
        youtube_username: str | None,
        facebook_username: str | None,
        identity_verified: bool,
    ) -> ApplicantRecord:
        self._maybe_fail()
        if await self.applicant_exists(email, phone):
            raise DuplicateApplicantError("applicant with this email and phone already exists")
        now = datetime.now(timezone.utc)
        record = ApplicantRecord(
            id=len(self.applicants) + 1,
            email=email,
            phone=phone,
            reddit_username=reddit_username,
            twitter_username=twitter_username,
            youtube_username=youtube_username,
            facebook_username=facebook_username,
            identity_verified=identity_verified,
            created_at=now,
            updated_at=now,
        )
        self.applicants.append(record)
        return record

    async def find_applicant_by_email(self, email: str) -> ApplicantRecord | None:
        self._maybe_fail()
        matches = [row for row in self.applicants if row.email == email]
        return matches[-1] if matches else None

    async def contractor_request_exists(self, applicant_id: int, company_slug: str) -> bool:
        self._maybe_fail()
        return any(
            row.applicant_id == applicant_id and row.company_slug == company_slug
            for row in self.contractor_requests
        )

    async def insert_contractor_request(
        self,
        *,
        applicant_id: int,
        email: str,
        company_slug: str,
        company_name: str,
        status: str = "pending",
        joined_community_channel: bool = True,
        can_start_job: bool = False,
    ) -> ContractorRequestRecord:
        self._maybe_fail()
        if await self.contractor_request_exists(applicant_id, company_slug):
            raise DuplicateContractorRequestError("contractor request already exists")
        now = datetime.now(timezone.utc)
        record = ContractorRequestRecord(
            id=len(self.contractor_requests) + 1,
            applicant_id=applicant_id,
            email=email,
            company_slug=company_slug,
            company_name=company_name,
            status=status,
            joined_community_channel=joined_community_channel,
            can_start_job=can_start_job,
            created_at=now,
            updated_at=now,
        )
        self.contractor_requests.append(record)
        return record

    async def ping(self) -> bool:
        self._maybe_fail()
        return True

    async def close(self) -> None:
        return None

    def seed_applicant(self, email: str, phone: str, reddit_username: str = "existinguser") -> ApplicantRecord:
        now = datetime.now(timezone.utc)
        record = ApplicantRecord(
            id=len(self.applicants) + 1,
            email=email,
            phone=phone,
            reddit_username=reddit_username,
            twitter_username=None,
            youtube_username=None,
            facebook_username=None,
            identity_verified=True,
            created_at=now,
            updated_at=now,
        )
        self.applicants.append(record)
        return record


class FakeVerifier:
    def __init__(self, verified: bool = True, reason: str = "verified") -> None:
        self.verified = verified
        self.reason = reason
        self.calls: list[str] = []

    async def verify(self, handle: str) -> VerificationOutcome:
        self.calls.append(handle)
        return VerificationOutcome(handle=handle, verified=self.verified, reason=self.reason)


@pytest.fixture
def fake_repository() -> FakeIntakeRepository:
    return FakeIntakeRepository()


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def api_client(fake_repository: FakeIntakeRepository, fake_verifier: FakeVerifier) -> Iterator[TestClient]:
    app.dependency_overrides[get_repository] = lambda: fake_repository
    app.dependency_overrides[get_identity_verifier] = lambda: fake_verifier

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    app.dependency_overrides.clear()
