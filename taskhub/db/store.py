"""
TaskHub Data Store — Generic relational data-access interface.

Logical operations (rows are plain dicts keyed by column name):
    select(table, columns, filters, order) -> rows
    insert(table, rows)                    -> inserted rows
    update(table, patch, filters)          -> affected rows
    delete(table, filters)                 -> None

Join projections are part of the column list: an ``Embed`` in
``columns`` attaches the referenced row of another table under a key, e.g.
a task with its project's title and status:

    await store.select(
        "tasks",
        ["*", Embed("project", "projects", ("title", "status"), foreign_key="project_id")],
        order=[Order("created_at", ascending=False)],
    )

Filter values are always bound parameters; ``Filter.in_`` compiles to a
parameterized IN clause.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from taskhub.db.base import Base
from taskhub.db.session import session_scope
from taskhub.engine.errors import ConstraintViolationError, DataStoreError

logger = logging.getLogger("taskhub.db.store")

Row = Dict[str, Any]


# ---------------------------------------------------------------------------
# Query building blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Filter:
    """A single column predicate: ``column <op> value``."""
    column: str
    op: str
    value: Any = None

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def neq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "neq", value)

    @classmethod
    def in_(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, "in", tuple(values))


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of filters (``a OR b``)."""
    filters: Tuple[Filter, ...]

    def __init__(self, *filters: Filter):
        object.__setattr__(self, "filters", tuple(filters))


@dataclass(frozen=True)
class Order:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class Embed:
    """
    Attach the row of ``table`` referenced by ``foreign_key`` under ``name``.
    The embedded value is a dict of ``columns``, or None when unreferenced.
    """
    name: str
    table: str
    columns: Tuple[str, ...]
    foreign_key: str
    target_key: str = "id"


Column = Union[str, Embed]
Condition = Union[Filter, AnyOf]


class DataStore(ABC):
    """Async relational data-access interface consumed by the services."""

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: Sequence[Column] = ("*",),
        filters: Sequence[Condition] = (),
        order: Sequence[Order] = (),
    ) -> List[Row]:
        ...

    @abstractmethod
    async def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        ...

    @abstractmethod
    async def update(self, table: str, patch: Row, filters: Sequence[Condition]) -> List[Row]:
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Condition]) -> None:
        ...


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------

class SqlDataStore(DataStore):
    """
    DataStore over SQLAlchemy Core tables registered on ``Base.metadata``.

    Each operation runs in its own transaction on a worker thread so the
    event loop is never blocked by database I/O.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ── Public async API ──

    async def select(
        self,
        table: str,
        columns: Sequence[Column] = ("*",),
        filters: Sequence[Condition] = (),
        order: Sequence[Order] = (),
    ) -> List[Row]:
        return await self._run("select", table, self._select_sync, table, columns, filters, order)

    async def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        return await self._run("insert", table, self._insert_sync, table, rows)

    async def update(self, table: str, patch: Row, filters: Sequence[Condition]) -> List[Row]:
        return await self._run("update", table, self._update_sync, table, patch, filters)

    async def delete(self, table: str, filters: Sequence[Condition]) -> None:
        await self._run("delete", table, self._delete_sync, table, filters)

    async def _run(self, operation: str, table: str, fn, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except IntegrityError as e:
            logger.warning(f"Constraint violation on {operation} {table}: {e.orig}")
            raise ConstraintViolationError(
                f"Constraint violation on {table}",
                table=table,
                operation=operation,
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Data store {operation} on {table} failed: {e}")
            raise DataStoreError(
                f"Data store {operation} on {table} failed",
                table=table,
                operation=operation,
            ) from e

    # ── Statement building ──

    def _table(self, name: str) -> sa.Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise DataStoreError(f"Unknown table: {name}", table=name)
        return table

    def _column(self, table: sa.Table, name: str) -> sa.Column:
        if name not in table.c:
            raise DataStoreError(f"Unknown column {table.name}.{name}", table=table.name)
        return table.c[name]

    def _predicate(self, table: sa.Table, condition: Condition):
        if isinstance(condition, AnyOf):
            return sa.or_(*(self._predicate(table, f) for f in condition.filters))

        column = self._column(table, condition.column)
        if condition.op == "eq":
            return column.is_(None) if condition.value is None else column == condition.value
        if condition.op == "neq":
            return column.is_not(None) if condition.value is None else column != condition.value
        if condition.op == "in":
            return column.in_(list(condition.value))
        raise DataStoreError(f"Unsupported filter operator: {condition.op}", table=table.name)

    def _where(self, table: sa.Table, filters: Sequence[Condition]) -> list:
        return [self._predicate(table, f) for f in filters]

    def _pk_filter(self, table: sa.Table, row: Row):
        return sa.and_(*(col == row[col.name] for col in table.primary_key.columns))

    # ── Sync workers (run via asyncio.to_thread) ──

    def _select_sync(
        self,
        table_name: str,
        columns: Sequence[Column],
        filters: Sequence[Condition],
        order: Sequence[Order],
    ) -> List[Row]:
        table = self._table(table_name)
        names = [c for c in columns if isinstance(c, str)]
        embeds = [c for c in columns if isinstance(c, Embed)]

        if not names or "*" in names:
            selected = list(table.c)
        else:
            selected = [self._column(table, n) for n in names]
        for embed in embeds:
            fk = self._column(table, embed.foreign_key)
            if fk not in selected:
                selected.append(fk)

        stmt = sa.select(*selected).where(*self._where(table, filters))
        for o in order:
            col = self._column(table, o.column)
            stmt = stmt.order_by(col.asc() if o.ascending else col.desc())

        with session_scope(self._session_factory) as session:
            rows = [dict(r._mapping) for r in session.execute(stmt)]
            for embed in embeds:
                self._attach_embed(session, rows, embed)
        return rows

    def _attach_embed(self, session: Session, rows: List[Row], embed: Embed) -> None:
        target = self._table(embed.table)
        target_key = self._column(target, embed.target_key)
        keys = {row[embed.foreign_key] for row in rows if row.get(embed.foreign_key) is not None}

        related: Dict[Any, Row] = {}
        if keys:
            cols = [target_key] + [self._column(target, c) for c in embed.columns if c != embed.target_key]
            for r in session.execute(sa.select(*cols).where(target_key.in_(keys))):
                m = dict(r._mapping)
                related[m[embed.target_key]] = {c: m[c] for c in embed.columns}

        for row in rows:
            row[embed.name] = related.get(row.get(embed.foreign_key))

    def _insert_sync(self, table_name: str, rows: Sequence[Row]) -> List[Row]:
        table = self._table(table_name)
        inserted: List[Row] = []
        with session_scope(self._session_factory) as session:
            for row in rows:
                for key in row:
                    self._column(table, key)
                result = session.execute(sa.insert(table).values(**row))
                pk = dict(zip((c.name for c in table.primary_key.columns), result.inserted_primary_key))
                fetched = session.execute(sa.select(table).where(self._pk_filter(table, pk))).one()
                inserted.append(dict(fetched._mapping))
        return inserted

    def _update_sync(self, table_name: str, patch: Row, filters: Sequence[Condition]) -> List[Row]:
        table = self._table(table_name)
        for key in patch:
            self._column(table, key)
        pk_cols = list(table.primary_key.columns)

        with session_scope(self._session_factory) as session:
            # Resolve targets first: the patch may change filtered columns
            targets = [
                dict(r._mapping)
                for r in session.execute(sa.select(*pk_cols).where(*self._where(table, filters)))
            ]
            if not targets:
                return []
            updated: List[Row] = []
            for pk in targets:
                session.execute(sa.update(table).where(self._pk_filter(table, pk)).values(**patch))
                # Primary key columns may themselves be patched
                key = {name: patch.get(name, value) for name, value in pk.items()}
                fetched = session.execute(sa.select(table).where(self._pk_filter(table, key))).one()
                updated.append(dict(fetched._mapping))
        return updated

    def _delete_sync(self, table_name: str, filters: Sequence[Condition]) -> None:
        table = self._table(table_name)
        if not filters:
            raise DataStoreError(f"Refusing unfiltered delete on {table_name}", table=table_name)
        with session_scope(self._session_factory) as session:
            session.execute(sa.delete(table).where(*self._where(table, filters)))
