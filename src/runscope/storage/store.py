"""
TraceStore - Persistent storage for agent run traces.

The store owns serialization of opaque values and all transactional concerns:
- a run graph is written in a single transaction (all or nothing)
- tags are resolved with an atomic get-or-create keyed on the unique name
- reads return the fully materialized graph, steps ordered by index
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import create_engine, event, func, or_, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..config import ServiceConfig
from ..errors import NotFoundError, StorageError
from ..trace.normalizer import generate_id
from ..trace.schemas import (
    Framework, RunStatus, StepStatus, StepKind, ToolCallStatus,
    Run, RunSummary, Step, Tag, ToolCall
)
from .models import Base, RunModel, StepModel, TagModel, ToolCallModel

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class RunQuery(BaseModel):
    """Filters for listing runs. Unset fields do not filter."""
    status: Optional[RunStatus] = None
    framework: Optional[Framework] = None
    q: Optional[str] = None
    limit: Optional[int] = None


class TraceStore(ABC):
    """Storage collaborator contract used by the ingestion and retrieval flows"""

    @abstractmethod
    def initialize(self):
        """Open connections and make sure the schema exists"""

    @abstractmethod
    def close(self):
        """Release connections"""

    @abstractmethod
    def create_run(self, run: Run) -> str:
        """Atomically persist a run with its steps, tool calls and tag associations"""

    @abstractmethod
    def get_run(self, run_id: str) -> Run:
        """Load a run graph. Raises NotFoundError for unknown ids."""

    @abstractmethod
    def list_runs(self, query: RunQuery) -> List[RunSummary]:
        """Runs matching the query, most recently started first"""

    @abstractmethod
    def delete_run(self, run_id: str):
        """Delete a run and everything it owns. Tags are kept."""

    @abstractmethod
    def get_or_create_tag(self, name: str) -> Tag:
        """Return the tag with this name, creating it if needed"""

    async def create_run_async(self, run: Run) -> str:
        return await asyncio.to_thread(self.create_run, run)

    async def get_run_async(self, run_id: str) -> Run:
        return await asyncio.to_thread(self.get_run, run_id)

    async def list_runs_async(self, query: RunQuery) -> List[RunSummary]:
        return await asyncio.to_thread(self.list_runs, query)

    async def delete_run_async(self, run_id: str):
        return await asyncio.to_thread(self.delete_run, run_id)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored in UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _tag_from_model(model: TagModel) -> Tag:
    return Tag(id=model.id, name=model.name)


def _tool_call_from_model(model: ToolCallModel) -> ToolCall:
    return ToolCall(
        id=model.id,
        step_id=model.step_id,
        name=model.name,
        status=ToolCallStatus(model.status),
        started_at=_as_utc(model.started_at),
        ended_at=_as_utc(model.ended_at),
        input=model.input,
        output=model.output,
        error=model.error
    )


def _step_from_model(model: StepModel) -> Step:
    return Step(
        id=model.id,
        run_id=model.run_id,
        index=model.index,
        status=StepStatus(model.status),
        started_at=_as_utc(model.started_at),
        ended_at=_as_utc(model.ended_at),
        name=model.name,
        kind=StepKind(model.kind) if model.kind else None,
        input=model.input,
        output=model.output,
        error=model.error,
        tool_calls=[_tool_call_from_model(t) for t in model.tool_calls]
    )


def _run_from_model(model: RunModel) -> Run:
    steps = sorted((_step_from_model(s) for s in model.steps), key=lambda s: s.index)
    return Run(
        id=model.id,
        framework=Framework(model.framework),
        status=RunStatus(model.status),
        started_at=_as_utc(model.started_at),
        ended_at=_as_utc(model.ended_at),
        name=model.name,
        metadata=model.run_metadata,
        tags=[_tag_from_model(t) for t in model.tags],
        steps=steps
    )


def _step_to_model(step: Step) -> StepModel:
    return StepModel(
        id=step.id,
        index=step.index,
        name=step.name,
        kind=step.kind.value if step.kind else None,
        input=step.input,
        output=step.output,
        error=step.error,
        status=step.status.value,
        started_at=step.started_at,
        ended_at=step.ended_at,
        tool_calls=[
            ToolCallModel(
                id=call.id,
                position=position,
                name=call.name,
                input=call.input,
                output=call.output,
                error=call.error,
                status=call.status.value,
                started_at=call.started_at,
                ended_at=call.ended_at
            )
            for position, call in enumerate(step.tool_calls)
        ]
    )


class SQLTraceStore(TraceStore):
    """
    Relational trace store on top of SQLAlchemy.
    SQLite by default; any SQLAlchemy database URL works.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine = None
        self._session_factory: Optional[sessionmaker] = None

    def initialize(self):
        if self._engine is not None:
            return

        connect_args = {}
        if self.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        try:
            engine = create_engine(self.database_url, echo=self.echo, connect_args=connect_args)
            if engine.dialect.name == "sqlite":
                event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not initialize trace store at {self.database_url}: {e}")
            raise StorageError("Failed to initialize storage") from e

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info(f"Trace store initialized ({self._engine.dialect.name})")

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Trace store closed")

    def _factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise StorageError("Trace store is not initialized")
        return self._session_factory

    def _session(self) -> Session:
        return self._factory()()

    def _transaction(self):
        """Session whose transaction commits on success and rolls back on error"""
        return self._factory().begin()

    def _resolve_tag(self, session: Session, name: str) -> TagModel:
        """Insert-if-absent on the unique name, then read back whichever row won"""
        insert = _UPSERT_INSERTS.get(self._engine.dialect.name)
        if insert is not None:
            stmt = insert(TagModel).values(id=generate_id(), name=name)
            session.execute(stmt.on_conflict_do_nothing(index_elements=["name"]))
        else:
            try:
                with session.begin_nested():
                    session.add(TagModel(id=generate_id(), name=name))
            except IntegrityError:
                logger.debug(f"Tag {name!r} created concurrently, reusing it")
        return session.execute(select(TagModel).where(TagModel.name == name)).scalar_one()

    def create_run(self, run: Run) -> str:
        try:
            with self._transaction() as session:
                tag_models = [self._resolve_tag(session, tag.name) for tag in run.tags]
                session.add(RunModel(
                    id=run.id,
                    name=run.name,
                    framework=run.framework.value,
                    status=run.status.value,
                    started_at=run.started_at,
                    ended_at=run.ended_at,
                    run_metadata=run.metadata,
                    tags=tag_models,
                    steps=[_step_to_model(step) for step in run.steps]
                ))
        except SQLAlchemyError as e:
            logger.exception(f"Failed to store run {run.id}: {e}")
            raise StorageError("Failed to store run") from e

        for tag, model in zip(run.tags, tag_models):
            tag.id = model.id
        logger.info(f"Stored run {run.id} with {len(run.steps)} steps and {len(run.tool_calls)} tool calls")
        return run.id

    def get_run(self, run_id: str) -> Run:
        try:
            with self._session() as session:
                model = session.get(
                    RunModel,
                    run_id,
                    options=[
                        selectinload(RunModel.steps).selectinload(StepModel.tool_calls),
                        selectinload(RunModel.tags),
                    ]
                )
                if model is None:
                    raise NotFoundError(run_id)
                return _run_from_model(model)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to load run {run_id}: {e}")
            raise StorageError("Failed to load run") from e

    def list_runs(self, query: RunQuery) -> List[RunSummary]:
        stmt = select(RunModel).options(selectinload(RunModel.tags))

        if query.status:
            stmt = stmt.where(RunModel.status == query.status.value)
        if query.framework:
            stmt = stmt.where(RunModel.framework == query.framework.value)
        if query.q:
            stmt = stmt.where(or_(
                RunModel.id.icontains(query.q, autoescape=True),
                RunModel.name.icontains(query.q, autoescape=True),
                RunModel.tags.any(TagModel.name.icontains(query.q, autoescape=True)),
            ))

        stmt = stmt.order_by(RunModel.started_at.desc())
        if query.limit:
            stmt = stmt.limit(query.limit)

        try:
            with self._session() as session:
                models = session.execute(stmt).scalars().all()
                step_counts = self._count_steps(session, [m.id for m in models])
                return [
                    RunSummary(
                        id=m.id,
                        framework=Framework(m.framework),
                        status=RunStatus(m.status),
                        started_at=_as_utc(m.started_at),
                        ended_at=_as_utc(m.ended_at),
                        name=m.name,
                        tags=[_tag_from_model(t) for t in m.tags],
                        step_count=step_counts.get(m.id, 0)
                    )
                    for m in models
                ]
        except SQLAlchemyError as e:
            logger.exception(f"Failed to list runs: {e}")
            raise StorageError("Failed to list runs") from e

    def _count_steps(self, session: Session, run_ids: List[str]) -> Dict[str, int]:
        if not run_ids:
            return {}
        rows = session.execute(
            select(StepModel.run_id, func.count(StepModel.id))
            .where(StepModel.run_id.in_(run_ids))
            .group_by(StepModel.run_id)
        )
        return {run_id: count for run_id, count in rows}

    def delete_run(self, run_id: str):
        try:
            with self._transaction() as session:
                model = session.get(RunModel, run_id)
                if model is None:
                    raise NotFoundError(run_id)
                session.delete(model)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to delete run {run_id}: {e}")
            raise StorageError("Failed to delete run") from e
        logger.info(f"Deleted run {run_id}")

    def get_or_create_tag(self, name: str) -> Tag:
        try:
            with self._transaction() as session:
                return _tag_from_model(self._resolve_tag(session, name))
        except SQLAlchemyError as e:
            logger.exception(f"Failed to resolve tag {name!r}: {e}")
            raise StorageError("Failed to resolve tag") from e


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store(config: ServiceConfig) -> TraceStore:
    """Build the configured trace store (not yet initialized)"""
    return SQLTraceStore(config.database_url, echo=config.echo_sql)
