"""Opaque bearer-token auth: signed, timestamped user ids."""

import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger("fresherflow.auth")


class TokenAuthProvider:
    def __init__(self, secret: str, max_age_seconds: int = 7 * 24 * 60 * 60, salt: str = "fresherflow-access"):
        self.max_age_seconds = max_age_seconds
        self._serializer = URLSafeTimedSerializer(secret, salt=salt)

    def issue(self, user_id: int) -> str:
        return self._serializer.dumps({"uid": user_id})

    def verify(self, token: str) -> Optional[int]:
        """Return the user id for a valid token, or None."""
        if not token:
            return None
        try:
            payload = self._serializer.loads(token, max_age=self.max_age_seconds)
        except SignatureExpired:
            logger.info("Rejected expired access token")
            return None
        except BadSignature:
            return None
        uid = payload.get("uid") if isinstance(payload, dict) else None
        return uid if isinstance(uid, int) else None
