"""
Tests for the cursor and paging database sources.

Validates:
- Both strategies yield the same records in query order
- Page boundaries and end-of-source detection
- Restart positioning from the execution context
- Error reporting as SourceError
- SQL loading from inline text or .sql files
"""

import logging

import pytest

from batch_etl.core.exceptions import SourceError
from batch_etl.core.state import ExecutionContext
from batch_etl.jobs.pay import Pay, create_pay_table, insert_pays
from batch_etl.sources.database import CursorSource, PagingSource, load_sql, model_row_mapper


ORDERED_QUERY = "SELECT id, amount, tx_name, tx_date_time FROM pay ORDER BY id"


def cursor_source(connect, **kwargs):
    kwargs.setdefault("sql", ORDERED_QUERY)
    kwargs.setdefault("row_mapper", model_row_mapper(Pay))
    kwargs.setdefault("name", "pays")
    return CursorSource(connect=connect, **kwargs)


def paging_source(connect, **kwargs):
    kwargs.setdefault("sql", ORDERED_QUERY)
    kwargs.setdefault("row_mapper", model_row_mapper(Pay))
    kwargs.setdefault("name", "pays")
    return PagingSource(connect=connect, **kwargs)


def read_all(source, context=None):
    source.open(context)
    try:
        items = []
        while True:
            item = source.read()
            if item is None:
                return items
            items.append(item)
    finally:
        source.close()


def test_cursor_source_reads_every_row_as_model(pay_db, pays):
    """Test that the cursor source maps every row into a Pay in query order."""
    items = list(cursor_source(pay_db, fetch_size=10))

    assert items == pays
    assert all(isinstance(item, Pay) for item in items)


def test_cursor_source_sets_fetch_size(pay_db):
    source = cursor_source(pay_db, fetch_size=7)

    source.open()
    try:
        assert source._cursor.arraysize == 7
        assert source.read().id == 1
    finally:
        source.close()

    assert source._cursor is None
    assert source._conn is None


@pytest.mark.parametrize("page_size", [1, 7, 10, 25, 30])
def test_paging_source_matches_cursor_source(pay_db, page_size):
    """Test that both strategies deliver the same sequence for any page size."""
    cursor_items = list(cursor_source(pay_db, fetch_size=page_size))
    paging_items = list(paging_source(pay_db, page_size=page_size))

    assert paging_items == cursor_items
    assert len(paging_items) == 25


def test_short_page_ends_source_without_extra_query(pay_db):
    """Test that a page shorter than page_size is the last page fetched."""
    source = paging_source(pay_db, page_size=10)

    items = read_all(source)

    assert len(items) == 25
    # Pages at offsets 0, 10 and 20 (5 rows); no query for offset 30
    assert source.page == 3


def test_full_last_page_needs_one_empty_page(connect, pays):
    """Test that an exact multiple of page_size ends on an empty page."""
    create_pay_table(connect)
    insert_pays(connect, pays[:20])
    source = paging_source(connect, page_size=10)

    items = read_all(source)

    assert [item.id for item in items] == list(range(1, 21))
    assert source.page == 3


def test_rows_are_dicts_without_row_mapper(pay_db):
    source = cursor_source(pay_db, row_mapper=None, sql="SELECT id, tx_name FROM pay ORDER BY id")

    first = read_all(source)[0]

    assert first == {"id": 1, "tx_name": "trade1"}


def test_query_parameters(pay_db):
    """Test that query parameters bind before the paging parameters."""
    sql = "SELECT id, amount, tx_name, tx_date_time FROM pay WHERE amount > ? ORDER BY id"

    cursor_ids = [p.id for p in cursor_source(pay_db, sql=sql, parameters=[2000])]
    paging_ids = [p.id for p in paging_source(pay_db, sql=sql, parameters=[2000], page_size=2)]

    assert cursor_ids == [21, 22, 23, 24, 25]
    assert paging_ids == cursor_ids


@pytest.mark.parametrize("make_source", [cursor_source, paging_source])
def test_restart_skips_committed_records(pay_db, make_source):
    """Test that open() resumes after the read count stored in the context."""
    source = make_source(pay_db)
    context = ExecutionContext({"pays.read.count": 12})

    items = read_all(source, context)

    assert [item.id for item in items] == list(range(13, 26))
    assert source.position == 25


def test_update_records_position(pay_db):
    source = cursor_source(pay_db)
    context = ExecutionContext()

    source.open(context)
    try:
        for _ in range(4):
            source.read()
        source.update(context)
    finally:
        source.close()

    assert context.get_int("pays.read.count") == 4


def test_save_state_off_ignores_context(pay_db):
    source = paging_source(pay_db, save_state=False)
    context = ExecutionContext({"pays.read.count": 20})

    items = read_all(source, context)
    source.update(context)

    assert len(items) == 25
    assert context.get_int("pays.read.count") == 20


@pytest.mark.parametrize("make_source", [cursor_source, paging_source])
def test_max_item_count(pay_db, make_source):
    items = read_all(make_source(pay_db, max_item_count=5))

    assert [item.id for item in items] == [1, 2, 3, 4, 5]


@pytest.mark.parametrize("make_source", [cursor_source, paging_source])
def test_query_error_is_source_error(pay_db, make_source):
    source = make_source(pay_db, sql="SELECT id FROM missing_table ORDER BY id")

    with pytest.raises(SourceError) as exc_info:
        read_all(source)

    assert "Failed to execute query for source 'pays'" in str(exc_info.value)


@pytest.mark.parametrize("make_source", [cursor_source, paging_source])
def test_mapping_error_is_source_error(pay_db, make_source):
    def reject(row):
        raise ValueError("unexpected row shape")

    source = make_source(pay_db, row_mapper=reject)

    with pytest.raises(SourceError) as exc_info:
        read_all(source)

    assert "Failed to map row at position 0" in str(exc_info.value)


def test_connection_error_is_source_error():
    def refuse():
        raise ConnectionError("no route to host")

    source = cursor_source(refuse)

    with pytest.raises(SourceError):
        source.open()


def test_read_before_open_is_source_error(pay_db):
    with pytest.raises(SourceError):
        cursor_source(pay_db).read()


def test_close_is_idempotent(pay_db):
    source = paging_source(pay_db)
    source.open()

    source.close()
    source.close()

    assert source._conn is None


def test_paging_clauses_per_dialect(pay_db):
    ansi = paging_source(pay_db, page_size=10, parameters=[1])
    mssql = paging_source(pay_db, page_size=10, parameters=[1], dialect="mssql")

    assert ansi.paged_sql == f"{ORDERED_QUERY} LIMIT ? OFFSET ?"
    assert ansi._paging_parameters(20) == (1, 10, 20)
    assert mssql.paged_sql == f"{ORDERED_QUERY} OFFSET ? ROWS FETCH NEXT ? ROWS ONLY"
    assert mssql._paging_parameters(20) == (1, 20, 10)


def test_paging_without_order_by_warns(pay_db, caplog):
    with caplog.at_level(logging.WARNING, logger="batch_etl.source.unordered"):
        paging_source(pay_db, sql="SELECT id FROM pay", name="unordered")

    assert any("has no ORDER BY" in r.getMessage() for r in caplog.records)


def test_invalid_sizes_and_dialect(pay_db):
    with pytest.raises(ValueError):
        cursor_source(pay_db, fetch_size=0)

    with pytest.raises(ValueError):
        paging_source(pay_db, page_size=0)

    with pytest.raises(ValueError):
        paging_source(pay_db, dialect="oracle")


def test_load_sql_from_file(tmp_path):
    sql_file = tmp_path / "get_pays.sql"
    sql_file.write_text("SELECT id FROM pay ORDER BY id;\n")

    assert load_sql(sql_file=str(sql_file)) == "SELECT id FROM pay ORDER BY id"


def test_load_sql_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_sql(sql_file=str(tmp_path / "missing.sql"))

    with pytest.raises(ValueError):
        load_sql()

    with pytest.raises(ValueError):
        load_sql(sql="SELECT 1", sql_file="also.sql")

    with pytest.raises(ValueError):
        load_sql(sql="  ;  ")
