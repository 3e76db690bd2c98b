from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ID_LENGTH = 32


group_members = Table(
    "group_members",
    Base.metadata,
    Column(
        "participant_id",
        String(ID_LENGTH),
        ForeignKey("participants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("group_id", String(ID_LENGTH), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("participant_id", "group_id", name="uq_group_members_participant_group"),
)


class ParticipantModel(Base):
    __tablename__ = "participants"

    id = Column(String(ID_LENGTH), primary_key=True)
    name = Column(String(50), nullable=False)
    # lower-cased name, keeps names unique regardless of case
    name_key = Column(String(50), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    groups = relationship("GroupModel", secondary=group_members, back_populates="members")

    def __repr__(self) -> str:
        return f"<ParticipantModel(id={self.id}, name={self.name})>"


class GroupModel(Base):
    __tablename__ = "groups"

    id = Column(String(ID_LENGTH), primary_key=True)
    name = Column(String(30), nullable=False)
    name_key = Column(String(30), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    members = relationship(
        "ParticipantModel",
        secondary=group_members,
        back_populates="groups",
        order_by="ParticipantModel.created_at",
    )

    def __repr__(self) -> str:
        return f"<GroupModel(id={self.id}, name={self.name}, members={[m.name for m in self.members]})>"


class GeneratedListModel(Base):
    __tablename__ = "generated_lists"

    id = Column(String(ID_LENGTH), primary_key=True)
    # insertion order, newest history entry has the highest value
    sequence = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    seed = Column(Integer, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    in_history = Column(Boolean, nullable=False, default=True)
    participants_snapshot = Column(JSON, nullable=False)
    groups_snapshot = Column(JSON, nullable=False)

    assignments = relationship(
        "AssignmentModel",
        back_populates="generated_list",
        cascade="all, delete-orphan",
        order_by="AssignmentModel.position",
    )

    def __repr__(self) -> str:
        return f"<GeneratedListModel(id={self.id}, created_at={self.created_at}, in_history={self.in_history})>"


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id = Column(String(ID_LENGTH), primary_key=True)
    list_id = Column(String(ID_LENGTH), ForeignKey("generated_lists.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    # no foreign keys: the ids point into the list's own roster snapshot
    giver_id = Column(String(ID_LENGTH), nullable=False)
    receiver_id = Column(String(ID_LENGTH), nullable=False)
    revealed = Column(Boolean, nullable=False, default=False)
    revealed_at = Column(DateTime(timezone=True), nullable=True)

    generated_list = relationship("GeneratedListModel", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("list_id", "giver_id", name="uq_assignments_list_giver"),
    )


class AppState(Base):
    __tablename__ = "app_state"

    id = Column(Integer, primary_key=True)
    current_list_id = Column(
        String(ID_LENGTH),
        ForeignKey("generated_lists.id", ondelete="SET NULL"),
        nullable=True,
    )
    max_history_count = Column(Integer, nullable=True)
    allow_history_assignment_view = Column(Boolean, nullable=True)

    current_list = relationship("GeneratedListModel")
