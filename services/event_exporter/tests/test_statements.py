import re

from conftest import make_row

from event_exporter.models import EVENT_COLUMNS, Batch
from event_exporter.statements import build_batch_insert, build_insert


def test_three_row_insert_has_33_sequential_placeholders() -> None:
    rows = [make_row(i) for i in range(3)]
    statement = build_insert("events", rows)

    assert len(statement.params) == 33
    assert len(re.findall(r"\([^()]*\)", statement.sql.split("VALUES", 1)[1])) == 3

    numbers = [int(n) for n in re.findall(r":p(\d+)", statement.sql)]
    assert numbers == list(range(1, 34))


def test_params_are_row_major_in_column_order() -> None:
    rows = [make_row(i) for i in range(2)]
    statement = build_insert("events", rows)

    assert statement.params == list(rows[0].values()) + list(rows[1].values())
    assert statement.params[0] == "row-000000"
    assert statement.params[11] == "row-000001"


def test_statement_targets_table_and_columns() -> None:
    statement = build_insert("analytics_events", [make_row()])
    assert statement.sql.startswith(
        f"INSERT INTO analytics_events ({', '.join(EVENT_COLUMNS)}) VALUES "
    )
    assert EVENT_COLUMNS[0] == "id"
    assert EVENT_COLUMNS[-1] == "timestamp"


def test_bind_params_are_keyed_by_placeholder() -> None:
    batch = Batch(rows=(make_row(0), make_row(1)))
    statement = build_batch_insert("events", batch)
    bound = statement.bind_params()

    assert sorted(bound, key=lambda k: int(k[1:])) == [f"p{i}" for i in range(1, 23)]
    assert bound["p1"] == "row-000000"
    assert bound["p12"] == "row-000001"
    assert bound["p8"] == 2
