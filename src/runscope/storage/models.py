"""
Runscope SQLAlchemy Database Models

runs ──< steps ──< tool_calls
runs >──< tags (via run_tags)

Opaque input/output/metadata values are stored as JSON.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


run_tags = Table(
    "run_tags",
    Base.metadata,
    Column("run_id", String(64), ForeignKey("runs.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(64), ForeignKey("tags.id"), primary_key=True),
)


class TagModel(Base):
    __tablename__ = "tags"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, unique=True)


class RunModel(Base):
    __tablename__ = "runs"

    id = Column(String(64), primary_key=True)
    name = Column(Text)
    framework = Column(String(16), nullable=False, default="OTHER")
    status = Column(String(16), nullable=False, default="RUNNING")
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True))
    # Column name differs: "metadata" is reserved on declarative classes
    run_metadata = Column("metadata", JSON)

    steps = relationship(
        "StepModel",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="StepModel.index",
    )
    tags = relationship("TagModel", secondary=run_tags, order_by="TagModel.name")

    __table_args__ = (Index("ix_runs_started_at", "started_at"),)


class StepModel(Base):
    __tablename__ = "steps"

    id = Column(String(64), primary_key=True)
    run_id = Column(String(64), ForeignKey("runs.id", ondelete="CASCADE"), nullable=False)
    index = Column(Integer, nullable=False)
    name = Column(Text)
    kind = Column(String(16))
    input = Column(JSON)
    output = Column(JSON)
    error = Column(Text)
    status = Column(String(16), nullable=False, default="PENDING")
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True))

    run = relationship("RunModel", back_populates="steps")
    tool_calls = relationship(
        "ToolCallModel",
        back_populates="step",
        cascade="all, delete-orphan",
        order_by="ToolCallModel.position",
    )

    __table_args__ = (Index("ix_steps_run_id_index", "run_id", "index"),)


class ToolCallModel(Base):
    __tablename__ = "tool_calls"

    id = Column(String(64), primary_key=True)
    step_id = Column(String(64), ForeignKey("steps.id", ondelete="CASCADE"), nullable=False)
    # Submitted array order within the step
    position = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    input = Column(JSON)
    output = Column(JSON)
    error = Column(Text)
    status = Column(String(16), nullable=False, default="RUNNING")
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True))

    step = relationship("StepModel", back_populates="tool_calls")

    __table_args__ = (Index("ix_tool_calls_step_id", "step_id"),)
