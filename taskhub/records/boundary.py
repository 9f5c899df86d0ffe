"""Boundary validation — rows coming out of the store and payloads coming in from callers."""

from typing import Any, Iterable, List, Mapping, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from taskhub.engine.errors import DataStoreError, TaskHubValidationError

M = TypeVar("M", bound=BaseModel)


def parse_row(model: Type[M], row: Mapping[str, Any], table: str) -> M:
    """Validate a store row into a record; malformed rows are store errors."""
    try:
        return model.model_validate(dict(row))
    except ValidationError as e:
        raise DataStoreError(
            f"Malformed row in {table}",
            table=table,
            operation="select",
            validation_errors=e.errors(include_url=False),
        ) from e


def parse_rows(model: Type[M], rows: Iterable[Mapping[str, Any]], table: str) -> List[M]:
    return [parse_row(model, row, table) for row in rows]


def validate_input(model: Type[M], payload: Union[M, Mapping[str, Any]]) -> M:
    """Validate caller input at a write boundary."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in errors)
        raise TaskHubValidationError(
            f"Invalid {model.__name__}: {fields}",
            validation_errors=errors,
        ) from e
