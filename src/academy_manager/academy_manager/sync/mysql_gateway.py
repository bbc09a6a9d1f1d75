from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Mapping, Sequence

import mysql.connector

from ..core.exceptions import GatewayError, RemoteUnreachableError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import execute, query
from .gateway import RemoteTableGateway, validate_column, validate_table

# Array-valued columns are stored as JSON documents.
JSON_COLUMNS: dict[str, frozenset[str]] = {
    "attendance": frozenset({"student_ids_present", "contacted_absentees"}),
}


def _encode_value(table: str, column: str, value: Any) -> Any:
    if column in JSON_COLUMNS.get(table, ()):
        return json.dumps(list(value or []))
    if isinstance(value, bool):
        return int(value)
    return value


def _decode_row(table: str, row: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    json_cols = JSON_COLUMNS.get(table, frozenset())
    for k, v in row.items():
        if k in json_cols:
            if isinstance(v, (bytes, bytearray)):
                v = v.decode("utf-8")
            v = json.loads(v) if isinstance(v, str) and v else (v or [])
        elif isinstance(v, Decimal):
            v = float(v)
        elif table == "fees" and k == "receipt_sent":
            v = bool(v)
        out[k] = v
    return out


class MySQLTableGateway(RemoteTableGateway):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _write(self, table: str, row: Mapping[str, Any], *, upsert: bool) -> None:
        t = validate_table(table)
        columns = [validate_column(c) for c in row.keys()]
        if "id" not in columns:
            raise GatewayError(f"{t} row without an id")

        col_sql = ", ".join(f"`{c}`" for c in columns)
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO `{t}` ({col_sql}) VALUES ({placeholders})"
        if upsert:
            updates = [f"`{c}`=VALUES(`{c}`)" for c in columns if c != "id"] or ["`id`=`id`"]
            sql += " ON DUPLICATE KEY UPDATE " + ", ".join(updates)

        params = tuple(_encode_value(t, c, row[c]) for c in columns)
        try:
            execute(self._conn_factory, sql, params)
        except mysql.connector.InterfaceError as e:
            raise RemoteUnreachableError(f"{t} write failed: {e}") from e
        except mysql.connector.Error as e:
            raise GatewayError(f"{t} write failed: {e}") from e

    def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        self._write(table, row, upsert=True)

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        self._write(table, row, upsert=False)

    def delete(self, table: str, entity_id: str) -> None:
        t = validate_table(table)
        try:
            execute(self._conn_factory, f"DELETE FROM `{t}` WHERE id=%s", (str(entity_id),))
        except mysql.connector.InterfaceError as e:
            raise RemoteUnreachableError(f"{t} delete failed: {e}") from e
        except mysql.connector.Error as e:
            raise GatewayError(f"{t} delete failed: {e}") from e

    def select(self, table: str) -> Sequence[dict[str, Any]]:
        t = validate_table(table)
        try:
            rows = query(self._conn_factory, f"SELECT * FROM `{t}`")
        except mysql.connector.InterfaceError as e:
            raise RemoteUnreachableError(f"{t} select failed: {e}") from e
        except mysql.connector.Error as e:
            raise GatewayError(f"{t} select failed: {e}") from e
        return [_decode_row(t, r) for r in rows]

    def check_connection(self) -> bool:
        try:
            return bool(query(self._conn_factory, "SELECT 1 AS ok"))
        except mysql.connector.Error:
            return False
