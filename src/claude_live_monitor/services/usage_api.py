"""Async client for the claude.ai usage endpoints."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import orjson

from claude_live_monitor.types.errors import (
    Blocked,
    HttpError,
    NetworkError,
    NoCredentials,
    RateLimited,
    SessionExpired,
    Unauthorized,
    UsageDecodeError,
)
from claude_live_monitor.types.usage import ExtraUsage, LimitData, UsageSnapshot

logger = logging.getLogger(__name__)

BASE_URL = "https://claude.ai/api/organizations"
REQUEST_TIMEOUT = 30.0
TOTAL_TIMEOUT = 60.0

DEFAULT_HEADERS = {
    "accept": "*/*",
    "accept-language": "en-US,en;q=0.9",
    "content-type": "application/json",
    "anthropic-client-platform": "web_claude_ai",
    "anthropic-client-version": "1.0.0",
    "user-agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "origin": "https://claude.ai",
    "referer": "https://claude.ai/settings/usage",
    "sec-fetch-dest": "empty",
    "sec-fetch-mode": "cors",
    "sec-fetch-site": "same-origin",
}


@dataclass(frozen=True)
class Organization:
    uuid: str
    name: str = ""
    id: Optional[int] = None


@dataclass(frozen=True)
class UsageLimits:
    five_hour: Optional[LimitData] = None
    seven_day: Optional[LimitData] = None
    seven_day_oauth_apps: Optional[LimitData] = None
    opus: Optional[LimitData] = None
    sonnet: Optional[LimitData] = None


def build_cookie(session_key: str, cf_clearance: str | None = None) -> str:
    parts = [f"sessionKey={session_key}"]
    if cf_clearance:
        parts.append(f"cf_clearance={cf_clearance}")
    return "; ".join(parts)


def is_html(body: bytes) -> bool:
    lowered = body.lower()
    return b"<!doctype html" in lowered or b"<html" in lowered


def classify_response(status_code: int, body: bytes):
    """Raise the UsageError matching a non-successful response.

    HTML bodies are edge blocks even when the status says success.
    """
    if is_html(body):
        raise Blocked()
    if 200 <= status_code < 300:
        return
    if status_code == 401:
        raise Unauthorized()
    if status_code == 403:
        if _is_permission_error(body):
            raise SessionExpired()
        raise Blocked()
    if status_code == 429:
        raise RateLimited()
    raise HttpError(status_code)


def _is_permission_error(body: bytes) -> bool:
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError:
        return False
    if not isinstance(payload, dict):
        return False
    error = payload.get("error")
    return isinstance(error, dict) and error.get("type") == "permission_error"


def parse_reset_time(value: Any) -> datetime | None:
    """Parse an ISO-8601 reset time, rounded to the nearest second (UTC).

    Naive timestamps are rejected.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    rounded = math.floor(parsed.timestamp() + 0.5)
    return datetime.fromtimestamp(rounded, tz=timezone.utc)


def parse_limit(raw: Any, name: str = "limit", required: bool = False) -> LimitData | None:
    """Decode one limit; a zero limit without reset time is not provided.

    An absent optional limit is None. A present limit without a numeric
    utilization, or a missing required one, raises UsageDecodeError.
    """
    if raw is None and not required:
        return None
    if not isinstance(raw, dict):
        raise UsageDecodeError(f"{name} is missing or not an object")
    utilization = raw.get("utilization")
    if isinstance(utilization, bool) or not isinstance(utilization, (int, float)):
        raise UsageDecodeError(f"{name} has no numeric utilization")
    resets_at = parse_reset_time(raw.get("resets_at"))
    if utilization == 0 and raw.get("resets_at") is None:
        return None
    return LimitData(percentage=float(utilization), resets_at=resets_at)


def parse_usage_limits(body: bytes) -> UsageLimits:
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise UsageDecodeError(str(e)) from e
    if not isinstance(payload, dict):
        raise UsageDecodeError("usage payload is not an object")
    return UsageLimits(
        five_hour=parse_limit(payload.get("five_hour"), "five_hour", required=True),
        seven_day=parse_limit(payload.get("seven_day"), "seven_day"),
        seven_day_oauth_apps=parse_limit(payload.get("seven_day_oauth_apps"), "seven_day_oauth_apps"),
        opus=parse_limit(payload.get("seven_day_opus"), "seven_day_opus"),
        sonnet=parse_limit(payload.get("seven_day_sonnet"), "seven_day_sonnet"),
    )


def parse_extra_usage(body: bytes) -> ExtraUsage | None:
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    currency = payload.get("spend_limit_currency")
    if not isinstance(payload.get("type"), str) or not isinstance(currency, str):
        return None
    balance = payload.get("balance_cents")
    limit = payload.get("spend_limit_amount_cents")
    return ExtraUsage(
        enabled=True,
        used=balance / 100.0 if isinstance(balance, int) else None,
        limit=limit / 100.0 if isinstance(limit, int) else None,
        currency=currency,
    )


def parse_organizations(body: bytes) -> list[Organization]:
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise UsageDecodeError(str(e)) from e
    if not isinstance(payload, list):
        raise UsageDecodeError("organizations payload is not a list")
    orgs = []
    for entry in payload:
        if isinstance(entry, dict) and isinstance(entry.get("uuid"), str):
            name = entry.get("name")
            org_id = entry.get("id")
            orgs.append(Organization(
                uuid=entry["uuid"],
                name=name if isinstance(name, str) else "",
                id=org_id if isinstance(org_id, int) else None,
            ))
    return orgs


class UsageApiClient:
    """One authenticated client session against the usage API.

    Use as an async context manager; the underlying httpx client is
    closed on exit.
    """

    def __init__(
        self,
        session_key: str,
        cf_clearance: str | None = None,
        base_url: str = BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        total_timeout: float = TOTAL_TIMEOUT,
    ):
        headers = dict(DEFAULT_HEADERS)
        headers["cookie"] = build_cookie(session_key, cf_clearance)
        self._base_url = base_url.rstrip("/")
        self._total_timeout = total_timeout
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(REQUEST_TIMEOUT),
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "UsageApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _get(self, path: str) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            return await asyncio.wait_for(self._client.get(url), timeout=self._total_timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"request to {path or '/'} timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or type(e).__name__) from e

    async def discover_organization(self) -> Organization:
        """Return the first organization visible to the session key."""
        response = await self._get("")
        classify_response(response.status_code, response.content)
        orgs = parse_organizations(response.content)
        if not orgs:
            raise NoCredentials("no organization available for this session key")
        logger.info("Auto-discovered organization: %s (%s)", orgs[0].name, orgs[0].uuid)
        return orgs[0]

    async def fetch_limits(self, org_id: str) -> UsageLimits:
        response = await self._get(f"/{org_id}/usage")
        classify_response(response.status_code, response.content)
        return parse_usage_limits(response.content)

    async def fetch_extra_usage(self, org_id: str) -> ExtraUsage | None:
        """Metered spending; None when unavailable. Never raises."""
        try:
            response = await self._get(f"/{org_id}/overage_spend_limit")
        except NetworkError:
            logger.debug("Extra usage request failed", exc_info=True)
            return None
        if response.status_code != 200 or is_html(response.content):
            return None
        return parse_extra_usage(response.content)

    async def fetch_snapshot(self, org_id: str) -> UsageSnapshot:
        """Fetch limits and extra usage concurrently.

        Only the limits request can fail the snapshot.
        """
        limits, extra = await asyncio.gather(
            self.fetch_limits(org_id),
            self.fetch_extra_usage(org_id),
            return_exceptions=True,
        )
        if isinstance(limits, BaseException):
            raise limits
        if isinstance(extra, BaseException):
            logger.debug("Ignoring extra usage failure: %r", extra)
            extra = None
        return UsageSnapshot(
            five_hour=limits.five_hour,
            seven_day=limits.seven_day,
            seven_day_oauth_apps=limits.seven_day_oauth_apps,
            opus=limits.opus,
            sonnet=limits.sonnet,
            extra_usage=extra,
            fetched_at=datetime.now(timezone.utc),
        )
