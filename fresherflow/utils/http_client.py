"""HTTP session with retry logic and a cheap connectivity probe."""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger("fresherflow.http")

USER_AGENT = "fresherflow-client/0.1 (+https://fresherflow.in)"


def create_session(
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    access_token: str = "",
) -> requests.Session:
    """Create a requests session with retry logic.

    Only GETs are retried at the transport level. Mutations (save toggles,
    action tracking) are not idempotent and are retried by the offline
    queue instead.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
    })
    if access_token:
        session.headers["Authorization"] = f"Bearer {access_token}"

    return session


def is_reachable(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: int = 5,
) -> bool:
    """HEAD the given URL; any HTTP response at all counts as online."""
    if not url:
        return False
    if session is None:
        session = requests.Session()

    try:
        session.head(url, timeout=timeout, allow_redirects=False)
        return True
    except requests.RequestException as e:
        logger.debug("Connectivity probe failed for %s: %s", url, e)
        return False
