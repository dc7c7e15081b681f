"""런타임 스키마 동기화 유틸리티."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.schema import Column, CreateColumn, CreateIndex, MetaData

logger = logging.getLogger(__name__)


def _literal_default(column: Column) -> Optional[str]:
    # NOT NULL 컬럼을 기존 행이 있는 테이블에 추가하려면 DEFAULT 절이 필요하다.
    default = column.default
    if default is None or not getattr(default, "is_scalar", False):
        return None
    value = default.arg
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return None


def sync_missing_schema_objects(engine: Engine, metadata: MetaData) -> List[str]:
    """모델 메타데이터 기준으로 누락된 컬럼/인덱스를 DB에 추가하고 추가한 객체 이름을 돌려준다."""
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    preparer = engine.dialect.identifier_preparer
    added: List[str] = []

    with engine.begin() as conn:
        for table in metadata.sorted_tables:
            if table.name not in existing_tables:
                continue

            existing_columns = {
                str(row.get("name"))
                for row in inspector.get_columns(table.name)
                if row.get("name")
            }
            table_sql = preparer.format_table(table)

            for column in table.columns:
                if column.name in existing_columns:
                    continue
                column_sql = str(CreateColumn(column).compile(dialect=engine.dialect)).strip()
                if not column.nullable and column.server_default is None:
                    literal = _literal_default(column)
                    if literal is not None:
                        column_sql = f"{column_sql} DEFAULT {literal}"
                conn.execute(text(f"ALTER TABLE {table_sql} ADD COLUMN {column_sql}"))
                added.append(f"{table.name}.{column.name}")

            existing_index_names = {
                str(row.get("name"))
                for row in inspector.get_indexes(table.name)
                if row.get("name")
            }
            for index in table.indexes:
                if not index.name or index.name in existing_index_names:
                    continue
                conn.execute(CreateIndex(index))
                added.append(index.name)

    if added:
        logger.info("[schema] added missing objects: %s", ", ".join(added))
    return added
