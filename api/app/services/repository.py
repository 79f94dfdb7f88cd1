from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from app.core.config import IntakeConfig, get_settings, resolve_intake_config

logger = logging.getLogger(__name__)

CONTRACTOR_REQUEST_STATUSES = {"pending", "approved", "rejected"}

_DATABASE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class RepositoryError(Exception):
    """Base repository error; raised as-is for unexpected database failures."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class PersistenceFailedError(RepositoryError):
    """Raised when a write executed but produced no row."""


class DuplicateApplicantError(RepositoryError):
    """Raised when an applicant with the same email and phone already exists."""


class DuplicateContractorRequestError(RepositoryError):
    """Raised when the applicant already asked to join the same company."""


@dataclass(slots=True)
class ApplicantRecord:
    id: int
    email: str
    phone: str
    reddit_username: str
    twitter_username: str | None
    youtube_username: str | None
    facebook_username: str | None
    identity_verified: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class ContractorRequestRecord:
    id: int
    applicant_id: int
    email: str
    company_slug: str
    company_name: str
    status: str
    joined_community_channel: bool
    can_start_job: bool
    created_at: datetime
    updated_at: datetime


_APPLICANT_COLUMNS = """
  id,
  email,
  phone,
  reddit_username,
  twitter_username,
  youtube_username,
  facebook_username,
  identity_verified,
  created_at,
  updated_at
"""

_CONTRACTOR_REQUEST_COLUMNS = """
  id,
  applicant_id,
  email,
  company_slug,
  company_name,
  status,
  joined_community_channel,
  can_start_job,
  created_at,
  updated_at
"""


class PostgresRepository:
    def __init__(
        self,
        config: IntakeConfig,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout: float = 15.0,
    ) -> None:
        self.config = config
        self.min_pool_size = min_pool_size
        self.max_pool_size = max(min_pool_size, max_pool_size)
        self.command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ping(self) -> bool:
        pool = await self._get_pool()
        try:
            return await pool.fetchval("select 1") == 1
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc

    async def applicant_exists(self, email: str, phone: str) -> bool:
        pool = await self._get_pool()
        try:
            found = await pool.fetchval(
                """
                select exists (
                  select 1
                  from applicants
                  where email = $1 and phone = $2
                )
                """,
                email,
                phone,
            )
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc
        return bool(found)

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
        if await self.applicant_exists(email, phone):
            raise DuplicateApplicantError("applicant with this email and phone already exists")

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into applicants (
                  email,
                  phone,
                  reddit_username,
                  twitter_username,
                  youtube_username,
                  facebook_username,
                  identity_verified
                )
                values ($1, $2, $3, $4, $5, $6, $7)
                returning {_APPLICANT_COLUMNS}
                """,
                email,
                phone,
                reddit_username,
                twitter_username or None,
                youtube_username or None,
                facebook_username or None,
                bool(identity_verified),
            )
        except pg_exc.UniqueViolationError as exc:
            logger.info("applicant insert hit unique constraint=%s", getattr(exc, "constraint_name", None))
            raise DuplicateApplicantError("applicant with this email and phone already exists") from exc
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc

        if not row:
            raise PersistenceFailedError("Failed to save user to database")
        logger.info("applicant stored id=%s", row["id"])
        return self._applicant_row_to_record(row)

    async def find_applicant_by_email(self, email: str) -> ApplicantRecord | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                select {_APPLICANT_COLUMNS}
                from applicants
                where email = $1
                order by created_at desc, id desc
                limit 1
                """,
                email,
            )
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc
        if not row:
            return None
        return self._applicant_row_to_record(row)

    async def contractor_request_exists(self, applicant_id: int, company_slug: str) -> bool:
        pool = await self._get_pool()
        try:
            found = await pool.fetchval(
                """
                select exists (
                  select 1
                  from contractor_requests
                  where applicant_id = $1 and company_slug = $2
                )
                """,
                applicant_id,
                company_slug,
            )
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc
        return bool(found)

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
        if status not in CONTRACTOR_REQUEST_STATUSES:
            raise RepositoryError(f"unsupported contractor request status: {status}")

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into contractor_requests (
                  applicant_id,
                  email,
                  company_slug,
                  company_name,
                  status,
                  joined_community_channel,
                  can_start_job
                )
                values ($1, $2, $3, $4, $5, $6, $7)
                returning {_CONTRACTOR_REQUEST_COLUMNS}
                """,
                applicant_id,
                email,
                company_slug,
                company_name,
                status,
                bool(joined_community_channel),
                bool(can_start_job),
            )
        except pg_exc.UniqueViolationError as exc:
            logger.info("contractor request insert hit unique constraint=%s", getattr(exc, "constraint_name", None))
            raise DuplicateContractorRequestError("contractor request already exists") from exc
        except _DATABASE_ERRORS as exc:
            raise RepositoryError(str(exc)) from exc

        if not row:
            raise PersistenceFailedError("Failed to save contractor request to database")
        logger.info("contractor request stored id=%s applicant_id=%s", row["id"], applicant_id)
        return self._contractor_request_row_to_record(row)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.config.connection_string:
            raise RepositoryUnavailableError(f"{self.config.connection_env_name} environment variable is not set")

        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is not None:
                return self._pool
            logger.info(
                "creating database pool source=%s ssl=%s",
                self.config.connection_env_name,
                self.config.use_encrypted_transport,
            )
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.config.connection_string,
                    min_size=self.min_pool_size,
                    max_size=self.max_pool_size,
                    command_timeout=self.command_timeout,
                    ssl="require" if self.config.use_encrypted_transport else False,
                )
            except Exception as exc:
                logger.error("failed to create database pool: %s", exc)
                raise RepositoryUnavailableError(f"database unavailable: {exc}") from exc
            return self._pool

    @staticmethod
    def _applicant_row_to_record(row: asyncpg.Record) -> ApplicantRecord:
        return ApplicantRecord(
            id=row["id"],
            email=row["email"],
            phone=row["phone"],
            reddit_username=row["reddit_username"],
            twitter_username=row["twitter_username"],
            youtube_username=row["youtube_username"],
            facebook_username=row["facebook_username"],
            identity_verified=bool(row["identity_verified"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _contractor_request_row_to_record(row: asyncpg.Record) -> ContractorRequestRecord:
        return ContractorRequestRecord(
            id=row["id"],
            applicant_id=row["applicant_id"],
            email=row["email"],
            company_slug=row["company_slug"],
            company_name=row["company_name"],
            status=row["status"],
            joined_community_channel=bool(row["joined_community_channel"]),
            can_start_job=bool(row["can_start_job"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        config=resolve_intake_config(settings),
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout=settings.database_command_timeout_seconds,
    )
