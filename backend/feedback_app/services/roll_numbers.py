"""Roll number allocation for students registered without one"""
import re
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_app.core.config import settings
from feedback_app.models.user import User

SUFFIX_DIGITS = 4


def next_roll_number_from(existing: Iterable[Optional[str]], prefix: str) -> str:
    """Next <prefix>NNNN after the highest numeric suffix already used"""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d{{{SUFFIX_DIGITS}}})$")
    highest = 0
    for roll_number in existing:
        match = pattern.match(roll_number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{SUFFIX_DIGITS}d}"


async def next_roll_number(db: AsyncSession, prefix: Optional[str] = None) -> str:
    prefix = prefix or settings.ROLL_NUMBER_PREFIX
    result = await db.execute(
        select(User.roll_number).where(User.roll_number.like(f"{prefix}%"))
    )
    return next_roll_number_from(result.scalars().all(), prefix)
