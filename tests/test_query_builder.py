"""
TitleDesk Backend — FilterSet Tests
=====================================

What:  Filtering, sort allow-listing and pagination SQL produced by
       FilterSet, checked by compiling the statements handed to the
       mocked session.
"""

import pytest
from sqlalchemy import select

from titledesk.models.application import Application
from titledesk.services.query_builder import FilterSet, ilike_pattern

SORT_COLUMNS = {
    "createdAt": Application.created_at,
    "fileNumber": Application.file_number,
}


def sql(stmt) -> str:
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


class TestFilterSet:
    def test_add_if_skips_empty_values(self):
        filters = FilterSet()
        filters.add_if(None, lambda v: Application.company == v)
        filters.add_if("   ", lambda v: Application.company == v)
        assert filters.clauses == []

    def test_add_if_strips_strings(self):
        filters = FilterSet().add_if("  Bank A ", lambda v: Application.company == v)
        assert "applications.company = 'Bank A'" in sql(filters.apply(select(Application)))

    def test_count_uses_same_predicates(self):
        filters = FilterSet().add(Application.status != "deleted")
        count_sql = sql(filters.count_statement(select(Application)))
        assert "count(*)" in count_sql
        assert "applications.status != 'deleted'" in count_sql

    def test_ilike_pattern_escapes_wildcards(self):
        assert ilike_pattern("50%_off") == "%50\\%\\_off%"


class TestPaginate:
    @pytest.mark.asyncio
    async def test_page_query_and_total(self, mock_db_session, make_result):
        rows = [Application(id=1, file_number="ULF-1", status="Login")]
        mock_db_session.execute.side_effect = [make_result(scalars=rows), make_result(scalar=21)]

        result_rows, total = await FilterSet().add(Application.status != "deleted").paginate(
            mock_db_session, select(Application), SORT_COLUMNS, "fileNumber", "asc", page=3, limit=10
        )

        assert result_rows == rows
        assert total == 21
        page_sql = sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "ORDER BY applications.file_number ASC" in page_sql
        assert "LIMIT 10 OFFSET 20" in page_sql

    @pytest.mark.asyncio
    async def test_unknown_sort_key_uses_default_descending(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(), make_result(scalar=0)]

        _, total = await FilterSet().paginate(
            mock_db_session, select(Application), SORT_COLUMNS, "password_hash", "sideways", page=1, limit=5
        )

        assert total == 0
        page_sql = sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "ORDER BY applications.created_at DESC" in page_sql
