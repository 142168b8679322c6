"""
TitleDesk Backend — App Settings Store
========================================

What:  Loads the `app_settings` key/value rows into one typed AppSettings
       object, caches it, and writes changes back.
Who:   Loaded by the lifespan handler at startup; read by the settings
       routes; refreshed by FileNumberGenerator after it advances the
       counter.

Lifecycle:
    startup  → load(db)      populate the cache from the table
    GET      → current       cached snapshot (loaded lazily if startup failed)
    PUT      → update(db)    upsert changed keys, refresh the cache
    on demand→ reload(db)    re-read everything

The cache is process-local. The file number counter is never taken from
the cache; FileNumberGenerator always reads it from the table under a lock.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import ValidationError
from titledesk.models.app_setting import AppSetting
from titledesk.schemas.app_settings import AppSettings, AppSettingsUpdate

logger = logging.getLogger(__name__)


class AppSettingsStore:
    def __init__(self) -> None:
        self._current: Optional[AppSettings] = None

    @property
    def current(self) -> AppSettings:
        """Cached snapshot; defaults until load() has run."""
        return self._current or AppSettings()

    @property
    def is_loaded(self) -> bool:
        return self._current is not None

    @staticmethod
    def from_rows(rows: Dict[str, Any]) -> AppSettings:
        """
        Build AppSettings from raw key/value rows.

        Unknown keys are ignored. A row holding an invalid value (e.g. a
        non-numeric padding written by hand) is dropped with a warning so
        the field falls back to its default.
        """
        known = {k: v for k, v in rows.items() if k in AppSettings.model_fields and v is not None}
        try:
            return AppSettings.model_validate(known)
        except PydanticValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
            logger.warning("Ignoring invalid app settings values for keys: %s", sorted(bad))
            return AppSettings.model_validate({k: v for k, v in known.items() if k not in bad})

    async def load(self, db: AsyncSession) -> AppSettings:
        result = await db.execute(select(AppSetting))
        rows = {row.key: row.value for row in result.scalars().all()}
        self._current = self.from_rows(rows)
        logger.info("App settings loaded (%d stored keys)", len(rows))
        return self._current

    async def reload(self, db: AsyncSession) -> AppSettings:
        return await self.load(db)

    async def get(self, db: AsyncSession) -> AppSettings:
        if self._current is None:
            return await self.load(db)
        return self._current

    async def update(self, db: AsyncSession, changes: AppSettingsUpdate) -> AppSettings:
        """
        Merge `changes` into the stored settings.

        Only the fields present in the request are written; the merged
        result is validated as a whole before anything is flushed.
        """
        data = changes.model_dump(exclude_unset=True)
        if not data:
            return await self.get(db)

        base = await self.load(db)
        try:
            merged = AppSettings.model_validate({**base.model_dump(), **data})
        except PydanticValidationError as e:
            raise ValidationError(
                message="Invalid settings",
                context={"errors": e.errors(include_url=False, include_context=False)},
            )

        for key in data:
            await self._write(db, key, getattr(merged, key))
        await db.flush()

        self._current = merged
        logger.info("App settings updated: %s", sorted(data))
        return merged

    async def _write(self, db: AsyncSession, key: str, value: Any) -> None:
        row = await db.get(AppSetting, key)
        if row is None:
            db.add(AppSetting(key=key, value=value))
        else:
            row.value = value

    def remember(self, **values: Any) -> None:
        """Patch cached fields after another component persisted them."""
        if self._current is not None:
            self._current = self._current.model_copy(update=values)


app_settings_store = AppSettingsStore()
