from __future__ import annotations

import re
from typing import Any, Mapping, Protocol, Sequence

from ..core.enums import Operation, Table
from ..core.exceptions import GatewayError, ValidationError

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class RemoteTableGateway(Protocol):
    """Key-addressed remote tables. Every method raises GatewayError on failure."""

    def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, table: str, entity_id: str) -> None:
        raise NotImplementedError

    def select(self, table: str) -> Sequence[dict[str, Any]]:
        raise NotImplementedError

    def check_connection(self) -> bool:
        """Cheap reachability check; returns False instead of raising."""
        raise NotImplementedError


def validate_table(table: str) -> str:
    try:
        return Table(table).value
    except ValueError:
        raise ValidationError(f"Unknown table: {table!r}")


def validate_column(column: str) -> str:
    if not _IDENTIFIER.match(column):
        raise ValidationError(f"Invalid column name: {column!r}")
    return column


def dispatch(gateway: RemoteTableGateway, table: str, operation: Operation, payload: Mapping[str, Any]) -> None:
    """Apply one mutation. INSERT is replayed as an upsert so retries stay idempotent."""
    op = Operation(operation)
    if op == Operation.DELETE:
        entity_id = payload.get("id")
        if not entity_id:
            raise GatewayError(f"DELETE on {table} without an id")
        gateway.delete(table, str(entity_id))
    else:
        gateway.upsert(table, payload)
