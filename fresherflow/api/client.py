"""HTTP client for the FresherFlow API.

Every failure surfaces as a typed ``ApiError`` subclass so callers (the
offline queue in particular) can tell a dead session from a flaky network
without reading error messages.
"""

import logging
from typing import Optional

import requests

from fresherflow.config import ApiConfig
from fresherflow.errors import (
    ApiError,
    AuthExpiredError,
    NotFoundError,
    ProfileIncompleteError,
    TransientApiError,
)
from fresherflow.opportunities.models import Opportunity
from fresherflow.profile.models import Profile
from fresherflow.utils.http_client import create_session

logger = logging.getLogger("fresherflow.api")


def _error_message(body, default: str) -> str:
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class FresherFlowClient:
    def __init__(self, base_url: str, access_token: str = "", timeout: int = 30,
                 session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("FresherFlowClient requires a base_url")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or create_session(access_token=access_token)

    @classmethod
    def from_config(cls, config: ApiConfig) -> "FresherFlowClient":
        session = create_session(
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            access_token=config.access_token,
        )
        return cls(config.base_url, timeout=config.timeout, session=session)

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransientApiError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        status = response.status_code
        if status < 400:
            return body

        message = _error_message(body, f"{method} {path} returned HTTP {status}")
        code = body.get("code") if isinstance(body, dict) else None
        logger.debug("API error %s on %s %s: %s", status, method, path, message)

        if status == 401:
            raise AuthExpiredError(message or "Session expired", status_code=401, code=code)
        if status == 403 and code == "PROFILE_INCOMPLETE":
            raise ProfileIncompleteError(message, completion_percentage=int(body.get("completionPercentage") or 0))
        if status == 404:
            raise NotFoundError(message, status_code=404, code=code)
        if status == 429 or status >= 500:
            raise TransientApiError(message, status_code=status, code=code)
        raise ApiError(message, status_code=status, code=code)

    @staticmethod
    def _parse_opportunity(data) -> Opportunity:
        try:
            return Opportunity.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransientApiError(f"Malformed opportunity in API response: {e!r}") from e

    @classmethod
    def _parse_list(cls, body: dict) -> tuple[list[Opportunity], int]:
        items = (body.get("opportunities") or []) if isinstance(body, dict) else None
        if not isinstance(items, list):
            raise TransientApiError("Malformed opportunity list in API response")
        opportunities = [cls._parse_opportunity(item) for item in items]
        try:
            count = int(body.get("count") or len(opportunities))
        except (TypeError, ValueError):
            count = len(opportunities)
        return opportunities, count

    # Opportunities

    def list_opportunities(
        self,
        type: Optional[str] = None,
        city: Optional[str] = None,
        closing_soon: bool = False,
    ) -> tuple[list[Opportunity], int]:
        params = {}
        if type:
            params["type"] = type
        if city:
            params["city"] = city
        if closing_soon:
            params["closingSoon"] = "true"
        return self._parse_list(self._request("GET", "/api/opportunities", params=params))

    def get_opportunity(self, id_or_slug: str) -> Opportunity:
        body = self._request("GET", f"/api/opportunities/{id_or_slug}")
        data = (body.get("opportunity") or body) if isinstance(body, dict) else body
        return self._parse_opportunity(data)

    # Saved + actions

    def list_saved(self) -> tuple[list[Opportunity], int]:
        return self._parse_list(self._request("GET", "/api/saved"))

    def toggle_saved(self, opportunity_id: str) -> bool:
        return bool(self._request("POST", f"/api/saved/{opportunity_id}").get("saved"))

    def track_action(self, opportunity_id: str, action_type: str) -> dict:
        return self._request("POST", f"/api/actions/{opportunity_id}/action", json={"actionType": action_type})

    def remove_action(self, opportunity_id: str) -> dict:
        return self._request("DELETE", f"/api/actions/{opportunity_id}")

    # Profile + growth

    def get_profile(self) -> tuple[dict, Optional[Profile]]:
        body = self._request("GET", "/api/profile")
        profile = body.get("profile")
        return body.get("user") or {}, Profile.from_dict(profile) if profile else None

    def record_growth_event(self, source: Optional[str], event: str) -> None:
        self._request("POST", "/api/public/growth/event", json={"source": source, "event": event})

    def get_growth_funnel(self) -> dict:
        """Admin-only funnel report."""
        return self._request("GET", "/api/admin/system/growth-funnel")
