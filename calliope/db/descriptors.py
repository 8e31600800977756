"""Declarative query descriptors."""

from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

import pydantic
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)

from calliope.exceptions import ValidationError


class QueryType(str, Enum):
    """Kinds of generated query functions."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    SELECT = "SELECT"


class QueryDescriptor(BaseModel):
    """Declares one named database operation.

    ``columns`` maps a column name to ``True`` when its value is bound as a
    parameter, or to a literal SQL expression (``"CURRENT_TIMESTAMP"``) that is
    emitted verbatim in place of the placeholder.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    type: QueryType = QueryType.SELECT
    table: Optional[str] = None
    columns: Optional[Dict[str, Union[StrictBool, StrictStr]]] = None
    id_column: Optional[str] = Field(default=None, validation_alias=AliasChoices("id_column", "idColumn"))
    sql: Optional[Union[StrictStr, Callable[..., Any]]] = None

    @field_validator('type', mode='before')
    def normalize_type(cls, v):
        """Accept any case; anything but INSERT or UPDATE is a plain query."""
        if v is None or isinstance(v, QueryType):
            return v or QueryType.SELECT
        upper = str(v).strip().upper()
        if upper in (QueryType.INSERT.value, QueryType.UPDATE.value):
            return QueryType(upper)
        return QueryType.SELECT

    @field_validator('name')
    def validate_name(cls, v):
        if not v.isidentifier() or v.startswith('_'):
            raise ValueError(f"query name '{v}' must be a public Python identifier")
        return v

    @field_validator('columns')
    def validate_columns(cls, v):
        if v is None:
            return v
        for column, entry in v.items():
            if entry is False or (isinstance(entry, str) and not entry.strip()):
                raise ValueError(f"column '{column}' must map to true or an SQL expression")
        return v

    @model_validator(mode='after')
    def validate_required_fields(self):
        """INSERT and UPDATE need a table and columns; UPDATE also needs the id column."""
        if self.type in (QueryType.INSERT, QueryType.UPDATE):
            kind = self.type.value
            if self.table is None:
                raise ValueError(f"{kind} descriptor missing table name")
            if not self.columns:
                raise ValueError(f"{kind} descriptor missing columns")
            if self.type == QueryType.UPDATE and self.id_column is None:
                raise ValueError("UPDATE descriptor missing idColumn")
        return self

    def is_column(self, key: str) -> bool:
        return bool(self.columns) and key in self.columns

    def column_expression(self, column: str) -> Optional[str]:
        """Literal SQL expression declared for ``column``, if any."""
        entry = (self.columns or {}).get(column)
        return entry if isinstance(entry, str) else None


def to_descriptor(entry: Union[QueryDescriptor, Mapping[str, Any]]) -> QueryDescriptor:
    """Coerce a mapping into a validated descriptor.

    Raises:
        ValidationError: If the descriptor is malformed.
    """
    if isinstance(entry, QueryDescriptor):
        return entry

    name = entry.get('name') if isinstance(entry, Mapping) else None
    try:
        return QueryDescriptor.model_validate(entry)
    except pydantic.ValidationError as e:
        problems = "; ".join(error['msg'] for error in e.errors())
        raise ValidationError(
            f"Invalid query descriptor '{name}': {problems}",
            query=name,
            table=entry.get('table') if isinstance(entry, Mapping) else None,
        ) from e
