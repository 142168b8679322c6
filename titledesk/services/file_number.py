"""
TitleDesk Backend — File Number Generator
===========================================

What:  Produces the next human-readable application identifier,
       `{prefix}-{sequence zero-padded to padding}` (e.g. ULF-1042).
Who:   ApplicationService.create_application when the client sends no
       file number.

Algorithm:
    1. Read prefix, sequence and padding from `app_settings`, locking the
       rows (SELECT ... FOR UPDATE) for the rest of the request transaction
    2. Try up to MAX_ATTEMPTS candidates, bumping the sequence whenever the
       candidate already exists in `applications`
    3. First free candidate: persist sequence + 1 and return it
    4. All attempts taken: persist the advanced sequence and return
       `{prefix}-{random 5 digits}` so creation never fails

Concurrency:
    The row lock serializes concurrent generators on PostgreSQL until the
    creating request commits, so two requests cannot hand out the same
    sequence value. The unique constraint on applications.file_number
    still guards the random fallback. SQLite ignores FOR UPDATE.
"""

import logging
import random
from typing import Tuple

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.models.app_setting import AppSetting
from titledesk.models.application import Application
from titledesk.services.app_settings_service import app_settings_store

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 20
COUNTER_KEYS = ("file_number_prefix", "file_number_sequence", "padding")


def format_file_number(prefix: str, sequence: int, padding: int) -> str:
    return f"{prefix}-{str(sequence).zfill(padding)}"


def random_file_number(prefix: str) -> str:
    return f"{prefix}-{random.randint(10000, 99999)}"


class FileNumberGenerator:
    async def generate(self, db: AsyncSession) -> str:
        prefix, sequence, padding = await self.lock_counter(db)

        for _ in range(MAX_ATTEMPTS):
            candidate = format_file_number(prefix, sequence, padding)
            if not await self.is_taken(db, candidate):
                await self.store_sequence(db, sequence + 1)
                logger.info("Generated file number %s", candidate)
                return candidate
            logger.debug("File number %s already in use", candidate)
            sequence += 1

        await self.store_sequence(db, sequence)
        fallback = random_file_number(prefix)
        logger.warning(
            "No free file number after %d attempts (last tried %s); using %s",
            MAX_ATTEMPTS,
            format_file_number(prefix, sequence - 1, padding),
            fallback,
        )
        return fallback

    async def lock_counter(self, db: AsyncSession) -> Tuple[str, int, int]:
        """
        Read (prefix, sequence, padding), locking the settings rows.

        Missing or invalid rows fall back to the AppSettings defaults.
        """
        stmt = (
            select(AppSetting)
            .where(AppSetting.key.in_(COUNTER_KEYS))
            .with_for_update()
        )
        result = await db.execute(stmt)
        rows = {row.key: row.value for row in result.scalars().all()}
        parsed = app_settings_store.from_rows(rows)
        return parsed.file_number_prefix, parsed.file_number_sequence, parsed.padding

    async def is_taken(self, db: AsyncSession, candidate: str) -> bool:
        result = await db.execute(
            select(exists().where(Application.file_number == candidate))
        )
        return bool(result.scalar())

    async def store_sequence(self, db: AsyncSession, value: int) -> None:
        row = await db.get(AppSetting, "file_number_sequence")
        if row is None:
            db.add(AppSetting(key="file_number_sequence", value=value))
        else:
            row.value = value
        await db.flush()
        app_settings_store.remember(file_number_sequence=value)


file_number_generator = FileNumberGenerator()
