"""Tests for PgClient.

Integration tests run against real PostgreSQL using the test_db profile.
"""

from unittest.mock import patch

import psycopg
import pytest

from rowcsv.core.client import PgClient
from rowcsv.core.config import ResolvedConfig, load_config, resolve_config
from rowcsv.core.converter import RowConverter
from rowcsv.core.exceptions import FetchError, NetworkError, RowCsvError, TimeoutError
from rowcsv.core.models import TypeKind
from tests.integration_config import TEST_PROFILE


@pytest.fixture
def resolved_config():
    config = load_config()
    return resolve_config(config, profile_name=TEST_PROFILE)


@pytest.fixture
def client(resolved_config):
    with PgClient(resolved_config) as c:
        yield c


# -- Connection failures --


@pytest.mark.unit
def test_connect_failure_maps_to_network_error():
    client = PgClient(ResolvedConfig(host="db.invalid", port=6543))
    with (
        patch("psycopg.connect", side_effect=psycopg.OperationalError("no route")),
        pytest.raises(NetworkError, match=r"db\.invalid:6543"),
        client.open_cursor("SELECT 1"),
    ):
        pass


class _Span:
    status = None

    def set_status(self, status):
        self.status = status


@pytest.mark.unit
@pytest.mark.parametrize(
    ("error", "expected", "status", "message"),
    [
        (psycopg.errors.QueryCanceled("canceling"), TimeoutError, "deadline_exceeded", "after 30.0s"),
        (psycopg.errors.SyntaxError("near SELEC"), RowCsvError, "invalid_argument", "SQL error"),
        (psycopg.errors.UndefinedTable("no sales"), RowCsvError, "not_found", "SQL error"),
        (psycopg.OperationalError("reset"), NetworkError, "unavailable", "Database error"),
    ],
)
def test_server_errors_translated(error, expected, status, message):
    span = _Span()
    translated = PgClient(ResolvedConfig())._translate(error, span, "SELECT 1")
    assert type(translated) is expected
    assert message in translated.message
    assert span.status == status


@pytest.mark.unit
def test_unmapped_errors_left_alone():
    error = psycopg.errors.DivisionByZero("division by zero")
    assert PgClient(ResolvedConfig())._translate(error, _Span(), "SELECT 1/0") is None


@pytest.mark.unit
def test_close_without_connection():
    client = PgClient(ResolvedConfig())
    client.close()
    assert client._connection is None


# -- Server-side cursor --


@pytest.mark.integration
def test_cursor_describes_columns(client):
    with client.open_cursor("SELECT 1::int4 AS n, 'x'::text AS s, now() AS t") as cur:
        converter = RowConverter(cur)
        assert [c.type_kind for c in converter.columns] == [
            TypeKind.NUMERIC,
            TypeKind.TEXT,
            TypeKind.TEMPORAL,
        ]


@pytest.mark.integration
def test_rows_fetched_in_batches(client):
    sql = "SELECT v, 'row ' || v AS label FROM generate_series(1, 250) AS v"
    with client.open_cursor(sql, batch_size=100) as cur:
        converter = RowConverter(cur, batch_size=100)
        lines = list(converter)
    assert len(lines) == 250
    assert lines[0] == "1,row 1"
    assert converter.row_count == 250


@pytest.mark.integration
def test_zero_row_query(client):
    with client.open_cursor("SELECT 1 AS n WHERE false") as cur:
        assert RowConverter(cur).collect_all(include_header=True) is None


@pytest.mark.integration
def test_numeric_and_date_pictures(client):
    sql = "SELECT 1234.5::numeric AS amount, DATE '2024-03-05' AS booked"
    with client.open_cursor(sql) as cur:
        converter = RowConverter(cur, number_format="FM9,990.00", date_format="DD.MM.YYYY")
        assert converter.next_row() == '"1,234.50",05.03.2024'


@pytest.mark.integration
def test_client_reuses_connection(client):
    with client.open_cursor("SELECT 1"):
        first_conn = client._connection
    with client.open_cursor("SELECT 2"):
        assert client._connection is first_conn


# -- Errors --


@pytest.mark.integration
def test_syntax_error(client):
    with pytest.raises(RowCsvError, match="SQL error"), client.open_cursor("SELEC 1"):
        pass


@pytest.mark.integration
def test_statement_timeout(resolved_config):
    config = resolved_config.model_copy(update={"default_timeout": 0.1})
    with PgClient(config) as client:
        with pytest.raises((TimeoutError, FetchError)):
            with client.open_cursor("SELECT pg_sleep(2)") as cur:
                RowConverter(cur).collect_all()
