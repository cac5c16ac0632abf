"""Join-code generation.

Codes are 6 characters of A-Z0-9. Uniqueness is enforced by the unique index on
workshops.code; a collision surfaces as a PostgREST 23505 error and the insert
is retried with a fresh code.
"""

import re
import secrets
import string
import logging
from typing import Any, Callable, Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import ConflictError

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")
MAX_CODE_ATTEMPTS = 5
UNIQUE_VIOLATION = "23505"


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def is_valid_code(code: Optional[str]) -> bool:
    return bool(code) and bool(CODE_PATTERN.match(code))


def preferring(code: Optional[str]) -> Callable[[], str]:
    """Code factory that offers `code` first and random codes after it is taken"""
    pending = [code] if code else []

    def factory() -> str:
        return pending.pop() if pending else generate_code()
    return factory


def _is_unique_violation(error: APIError) -> bool:
    return getattr(error, "code", None) == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(error)


def insert_with_unique_code(
    supabase: Client,
    row: Dict[str, Any],
    code_factory: Callable[[], str] = generate_code,
    attempts: int = MAX_CODE_ATTEMPTS,
) -> Dict[str, Any]:
    """Insert a workshop row with a code from code_factory, retrying on collision"""
    for attempt in range(1, attempts + 1):
        code = code_factory()
        try:
            result = supabase.table("workshops").insert({**row, "code": code}).execute()
        except APIError as e:
            if not _is_unique_violation(e):
                raise
            logger.info(f"Join code collision on attempt {attempt}/{attempts}, retrying")
            continue
        if result.data:
            return result.data[0]
    logger.error(f"Could not allocate a unique join code after {attempts} attempts")
    raise ConflictError("Could not allocate a unique workshop code. Please retry.")
