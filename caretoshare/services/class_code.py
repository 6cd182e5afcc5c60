"""
services/class_code.py

Six-character class join codes.

Candidates are drawn from [A-Z0-9] and re-drawn while an existing class
already uses them. The unique index on classes.class_code is the actual
guarantee; this lookup only makes a collision on insert unlikely.

"""

import re
import secrets
import string

from sqlalchemy import select
from sqlalchemy.orm import Session

from caretoshare.core.config import settings
from caretoshare.core.errors import Conflict
from caretoshare.models.classroom import Class


CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6

_CODE_RE = re.compile(r"^[A-Z0-9]{6}$")


def random_class_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def is_valid_class_code(code: str) -> bool:
    return bool(_CODE_RE.match(code))


def normalize_class_code(code: str) -> str:
    return code.strip().upper()


def code_in_use(db: Session, code: str) -> bool:
    return db.scalar(select(Class.id).where(Class.class_code == code)) is not None


def generate_class_code(db: Session, *, max_attempts: int | None = None) -> str:
    attempts = max_attempts or settings.CLASS_CODE_MAX_ATTEMPTS
    for _ in range(attempts):
        code = random_class_code()
        if not code_in_use(db, code):
            return code
    raise Conflict("Could not allocate a unique class code, please retry")
