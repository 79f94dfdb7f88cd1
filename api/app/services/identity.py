from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import get_settings, resolve_intake_config

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class VerificationOutcome:
    handle: str
    verified: bool
    reason: str


class RedditIdentityVerifier:
    """Confirms a Reddit account exists using the application-only OAuth flow.

    Every failure collapses to ``verified=False``; ``reason`` is for logs only
    and must not be surfaced to callers.
    """

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        user_agent: str,
        token_url: str,
        api_base_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.token_url = token_url
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def missing_credentials(self) -> list[str]:
        missing: list[str] = []
        if not self.client_id:
            missing.append("FDU_REDDIT_CLIENT_ID")
        if not self.client_secret:
            missing.append("FDU_REDDIT_CLIENT_SECRET")
        return missing

    async def verify(self, handle: str) -> VerificationOutcome:
        missing = self.missing_credentials
        if missing:
            logger.error("reddit verification disabled, missing credentials: %s", " ".join(missing))
            return VerificationOutcome(handle=handle, verified=False, reason="not_configured")

        if self._client is not None:
            return await self._verify_with(self._client, handle)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await self._verify_with(client, handle)

    async def _verify_with(self, client: httpx.AsyncClient, handle: str) -> VerificationOutcome:
        token = await self._fetch_access_token(client)
        if token is None:
            return VerificationOutcome(handle=handle, verified=False, reason="token_unavailable")
        if not token:
            return VerificationOutcome(handle=handle, verified=False, reason="token_missing")

        url = f"{self.api_base_url}/user/{quote(handle, safe='')}/about"
        try:
            response = await client.get(
                url,
                headers={"Authorization": f"Bearer {token}", "User-Agent": self.user_agent},
            )
        except httpx.HTTPError as exc:
            logger.warning("reddit profile lookup failed handle=%s error=%s", handle, exc)
            return VerificationOutcome(handle=handle, verified=False, reason="provider_error")

        if not response.is_success:
            logger.info("reddit profile not found handle=%s status=%s", handle, response.status_code)
            return VerificationOutcome(handle=handle, verified=False, reason="not_found")

        if not _has_identity_marker(_json_or_none(response)):
            logger.info("reddit profile response lacks account name handle=%s", handle)
            return VerificationOutcome(handle=handle, verified=False, reason="not_found")

        logger.info("reddit account verified handle=%s", handle)
        return VerificationOutcome(handle=handle, verified=True, reason="verified")

    async def _fetch_access_token(self, client: httpx.AsyncClient) -> str | None:
        """Return the token, ``""`` when the response carries none, ``None`` on failure."""
        try:
            response = await client.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id or "", self.client_secret or ""),
                headers={"User-Agent": self.user_agent},
            )
        except httpx.HTTPError as exc:
            logger.warning("reddit token request failed error=%s", exc)
            return None

        if not response.is_success:
            logger.warning("reddit token request rejected status=%s", response.status_code)
            return None

        payload = _json_or_none(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            logger.warning("reddit token response did not include an access token")
            return ""
        return token


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _has_identity_marker(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    data = payload.get("data")
    if not isinstance(data, dict):
        return False
    name = data.get("name")
    return isinstance(name, str) and bool(name)


@lru_cache
def get_identity_verifier() -> RedditIdentityVerifier:
    settings = get_settings()
    config = resolve_intake_config(settings)
    return RedditIdentityVerifier(
        client_id=config.identity_client_id,
        client_secret=config.identity_client_secret,
        user_agent=settings.reddit_user_agent,
        token_url=settings.reddit_token_url,
        api_base_url=settings.reddit_api_base_url,
        timeout_seconds=settings.verification_timeout_seconds,
    )
