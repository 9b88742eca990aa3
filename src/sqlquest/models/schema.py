"""Declarative table schema consumed by the CRUD generators."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sqlquest.models.enums import InternalType


class ColumnSpec(BaseModel):
    """One column of a TableSchema.

    Columns without an `internal_type` are carried through SELECTs but insert
    as NULL and are skipped by CREATE TABLE.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    source_column_name: str = Field(alias="sqlColumnName")
    internal_type: InternalType | None = Field(default=None, alias="sqlDataType")
    nullable: bool = True
    max_length: int | None = Field(default=None, alias="maxLength", ge=1)
    decimal_places: int | None = Field(default=None, alias="decimals")

    @field_validator("internal_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class TableSchema(BaseModel):
    """Read-only table descriptor.

    `primary_key` holds property keys in key order. An empty primary key is
    accepted here so CRUD generators can report it as an error value.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    table_name: str = Field(alias="sqlTableName")
    primary_key: tuple[str, ...] = Field(default=(), alias="sqlPrimaryKey")
    properties: dict[str, ColumnSpec]
    permission_object_type: str | None = Field(default=None, alias="metaObjectType")

    @field_validator("primary_key", mode="before")
    @classmethod
    def _coerce_primary_key(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @model_validator(mode="after")
    def _validate_primary_key(self) -> TableSchema:
        missing = [key for key in self.primary_key if key not in self.properties]
        if missing:
            raise ValueError(
                f"primary key columns not declared in properties: {', '.join(missing)}"
            )
        return self

    def column(self, key: str) -> ColumnSpec:
        return self.properties[key]

    def key_column_names(self) -> list[str]:
        """Source column names of the primary key, in key order."""
        return [self.properties[key].source_column_name for key in self.primary_key]


def load_table_schema(path: Path) -> TableSchema:
    """Load a TableSchema from a JSON table-schema file.

    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the file is not valid JSON
        pydantic.ValidationError: If the document is not a valid schema
    """
    with path.open(encoding="utf-8") as f:
        raw = json.load(f)
    return TableSchema.model_validate(raw)
