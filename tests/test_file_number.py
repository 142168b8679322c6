"""
TitleDesk Backend — File Number Generator Tests
=================================================

What:  Tests for FileNumberGenerator against a mocked session.

Test Strategy:
    - Formatting and zero padding
    - First free candidate wins and the sequence is advanced past it
    - Taken candidates are skipped
    - Exhausted attempts fall back to {prefix}-{5 random digits} and still
      persist the advanced sequence
"""

import re
from unittest.mock import AsyncMock, patch

import pytest

from titledesk.models.app_setting import AppSetting
from titledesk.services.file_number import (
    MAX_ATTEMPTS,
    FileNumberGenerator,
    format_file_number,
    random_file_number,
)


class TestFormatting:
    def test_pads_to_width(self):
        assert format_file_number("ULF", 42, 4) == "ULF-0042"

    def test_longer_sequence_is_not_truncated(self):
        assert format_file_number("ULF", 123456, 4) == "ULF-123456"

    def test_random_fallback_has_five_digits(self):
        for _ in range(50):
            assert re.fullmatch(r"ULF-\d{5}", random_file_number("ULF"))


class TestGenerate:
    def setup_method(self):
        self.generator = FileNumberGenerator()

    @pytest.mark.asyncio
    async def test_first_free_candidate(self, mock_db_session):
        sequence_row = AppSetting(key="file_number_sequence", value=1042)
        mock_db_session.get.return_value = sequence_row

        with patch.object(self.generator, "lock_counter", AsyncMock(return_value=("ULF", 1042, 4))), \
             patch.object(self.generator, "is_taken", AsyncMock(return_value=False)):
            number = await self.generator.generate(mock_db_session)

        assert number == "ULF-1042"
        assert sequence_row.value == 1043

    @pytest.mark.asyncio
    async def test_skips_taken_numbers(self, mock_db_session):
        sequence_row = AppSetting(key="file_number_sequence", value=7)
        mock_db_session.get.return_value = sequence_row
        taken = AsyncMock(side_effect=[True, True, False])

        with patch.object(self.generator, "lock_counter", AsyncMock(return_value=("TD", 7, 3))), \
             patch.object(self.generator, "is_taken", taken):
            number = await self.generator.generate(mock_db_session)

        assert number == "TD-009"
        assert sequence_row.value == 10
        assert taken.await_count == 3

    @pytest.mark.asyncio
    async def test_falls_back_after_max_attempts(self, mock_db_session):
        sequence_row = AppSetting(key="file_number_sequence", value=100)
        mock_db_session.get.return_value = sequence_row

        with patch.object(self.generator, "lock_counter", AsyncMock(return_value=("ULF", 100, 4))), \
             patch.object(self.generator, "is_taken", AsyncMock(return_value=True)):
            number = await self.generator.generate(mock_db_session)

        assert re.fullmatch(r"ULF-\d{5}", number)
        assert sequence_row.value == 100 + MAX_ATTEMPTS

    @pytest.mark.asyncio
    async def test_missing_sequence_row_is_created(self, mock_db_session):
        mock_db_session.get.return_value = None

        with patch.object(self.generator, "lock_counter", AsyncMock(return_value=("ULF", 1000, 4))), \
             patch.object(self.generator, "is_taken", AsyncMock(return_value=False)):
            await self.generator.generate(mock_db_session)

        added = mock_db_session.add.call_args.args[0]
        assert added.key == "file_number_sequence"
        assert added.value == 1001
