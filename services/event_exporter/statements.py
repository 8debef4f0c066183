# services/event_exporter/statements.py

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .models import EVENT_COLUMNS, Batch, NormalizedRow


@dataclass(frozen=True)
class InsertStatement:
    """Многострочный INSERT с позиционно пронумерованными параметрами :p1..:pN."""

    sql: str
    params: List[Any]

    def bind_params(self) -> Dict[str, Any]:
        """Параметры в виде, который принимает sqlalchemy.text()."""
        return {f"p{index}": value for index, value in enumerate(self.params, start=1)}


def _placeholder_group(row_index: int) -> str:
    width = len(EVENT_COLUMNS)
    return "(" + ", ".join(
        f":p{width * row_index + column}" for column in range(1, width + 1)
    ) + ")"


def build_insert(table_name: str, rows: Sequence[NormalizedRow]) -> InsertStatement:
    """
    Строит один INSERT на все строки пачки.

    Строка i, колонка j (с единицы) получает плейсхолдер :p{11*i + j};
    params — построчное разворачивание значений в том же порядке.
    table_name должен быть уже санитизирован.
    """
    groups: List[str] = []
    params: List[Any] = []
    for row_index, row in enumerate(rows):
        groups.append(_placeholder_group(row_index))
        params.extend(row.values())

    sql = (
        f"INSERT INTO {table_name} ({', '.join(EVENT_COLUMNS)}) "
        f"VALUES {', '.join(groups)}"
    )
    return InsertStatement(sql=sql, params=params)


def build_batch_insert(table_name: str, batch: Batch) -> InsertStatement:
    return build_insert(table_name, batch.rows)
