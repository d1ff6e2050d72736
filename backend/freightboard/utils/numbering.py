"""Load number generation.

Format:
  LD{millis:6}{rand:4}  → "LD" + last six digits of the epoch-millis clock
                          + four random base-36 characters, upper-cased

e.g. LD4821937QX2A. The number is only a human-readable handle; ``id`` stays
the primary key. A generated number that already exists is regenerated.
"""

import secrets
import string
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.middleware.exceptions import LoadNumberExhaustedError
from freightboard.models.load import Load

PREFIX = "LD"
BASE36_ALPHABET = string.digits + string.ascii_uppercase
MAX_ATTEMPTS = 5


def format_load_number(millis: int, suffix: str) -> str:
    return f"{PREFIX}{str(millis)[-6:].zfill(6)}{suffix.upper()}"


def _random_suffix(length: int = 4) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


async def _exists(db: AsyncSession, load_number: str) -> bool:
    result = await db.execute(
        select(Load.id).where(Load.load_number == load_number)
    )
    return result.scalar_one_or_none() is not None


async def generate_load_number(db: AsyncSession) -> str:
    """Generate a load number not yet used by any load.

    Raises LoadNumberExhaustedError after MAX_ATTEMPTS collisions.
    """
    for _ in range(MAX_ATTEMPTS):
        code = format_load_number(time.time_ns() // 1_000_000, _random_suffix())
        if not await _exists(db, code):
            return code
    raise LoadNumberExhaustedError(MAX_ATTEMPTS)
