"""
Mini-app initData verification.
Checks the HMAC-SHA256 signature the chat platform attaches to initData and
extracts the user identity embedded in it.
"""
import hmac
import hashlib
import json
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode

import structlog
from pydantic import BaseModel, ValidationError

from app.errors import ErrorKind, SessionParseError

logger = structlog.get_logger()

WEB_APP_DATA_KEY = b"WebAppData"
MISSING_BOT_TOKEN = "MISSING_BOT_TOKEN"


class ValidationResult(BaseModel):
    """Outcome of an initData check."""
    ok: bool
    reason: Optional[ErrorKind] = None


class SessionUser(BaseModel):
    """Identity claims carried in the `user` field of initData."""
    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None

    model_config = {"extra": "allow"}

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


def build_check_string(pairs: list[tuple[str, str]]) -> str:
    """Canonical data-check-string: sorted `key=value` lines without `hash`."""
    lines = sorted(f"{key}={value}" for key, value in pairs if key != "hash")
    return "\n".join(lines)


def sign_check_string(check_string: str, bot_token: str) -> str:
    secret_key = hmac.new(WEB_APP_DATA_KEY, bot_token.encode("utf-8"), hashlib.sha256).digest()
    return hmac.new(secret_key, check_string.encode("utf-8"), hashlib.sha256).hexdigest()


class SessionValidator:
    """Verifies initData strings against the configured bot token."""

    def __init__(self, bot_token: str):
        if not bot_token:
            logger.warning("Bot token not configured, every initData check will fail")
        self.bot_token = bot_token or MISSING_BOT_TOKEN

    def validate(self, init_data: Any) -> ValidationResult:
        """
        Verify the signature of an initData query string.

        Args:
            init_data: Raw initData as received from the mini-app

        Returns:
            ValidationResult with ok=True, or ok=False and the failure reason
        """
        if not init_data:
            return ValidationResult(ok=False, reason=ErrorKind.EMPTY)
        if not isinstance(init_data, str):
            return ValidationResult(ok=False, reason=ErrorKind.HASH_MISMATCH)

        pairs = parse_qsl(init_data, keep_blank_values=True)
        supplied = next((value for key, value in pairs if key == "hash"), "")
        computed = sign_check_string(build_check_string(pairs), self.bot_token)

        if not hmac.compare_digest(computed.encode("utf-8"), supplied.encode("utf-8")):
            return ValidationResult(ok=False, reason=ErrorKind.HASH_MISMATCH)
        return ValidationResult(ok=True)

    @staticmethod
    def extract_user(init_data: str) -> Optional[SessionUser]:
        """
        Parse the `user` field of an already validated initData string.

        Returns:
            SessionUser, or None when initData carries no user

        Raises:
            SessionParseError: if the user field is not a valid JSON identity document
        """
        raw_user = dict(parse_qsl(init_data, keep_blank_values=True)).get("user")
        if not raw_user:
            return None
        try:
            return SessionUser.model_validate(json.loads(raw_user))
        except (ValueError, ValidationError) as e:
            logger.warning("Failed to parse initData user", error=str(e))
            raise SessionParseError(f"Некорректные данные пользователя: {e}") from e


def sign_init_data(fields: dict[str, str], bot_token: str) -> str:
    """Build a signed initData query string, as the chat platform does."""
    check_string = build_check_string(list(fields.items()))
    return urlencode({**fields, "hash": sign_check_string(check_string, bot_token)})
