"""Permission context passed to CRUD generators, plus the metatable read filter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlquest.connector import Connector
    from sqlquest.interfaces import PermissionChecker

METATABLE = "metatable"
READ_BIT = 4


@dataclass(frozen=True)
class ReadFilter:
    """Join clause and predicate ANDed into a SELECT."""

    join: str
    predicate: str


@dataclass(frozen=True)
class PermissionContext:
    """Acting identity plus the checker that decides for it."""

    checker: PermissionChecker
    user_id: str | None = None
    group_ids: tuple[str, ...] = field(default_factory=tuple)


def metatable_read_filter(
    connector: Connector,
    context: PermissionContext,
    object_type: str,
    table_name: str,
    key_column: str,
) -> ReadFilter:
    """Build the POSIX-style owner/group/public read filter over `metatable`.

    A row is readable when the metatable entry for its key grants the read bit
    to the acting user as owner, to one of the user's groups, or to everyone.
    """
    join = (
        f" INNER JOIN {METATABLE} ON {table_name}.{connector.column_ref(key_column)}"
        f"={METATABLE}.objcode"
    )
    grants = [
        f"({METATABLE}.objown={connector.sql_string(context.user_id)}"
        f" AND ({METATABLE}.ownperms&{READ_BIT})<>0)"
    ]
    if context.group_ids:
        groups = ",".join(connector.sql_string(group) for group in context.group_ids)
        grants.append(
            f"({METATABLE}.objgrp IN ({groups}) AND ({METATABLE}.grpperms&{READ_BIT})<>0)"
        )
    grants.append(f"({METATABLE}.pubperms&{READ_BIT})<>0")
    predicate = (
        f"{METATABLE}.objtyp={connector.sql_string(object_type)} AND ({' OR '.join(grants)})"
    )
    return ReadFilter(join=join, predicate=predicate)
