"""
Group ORM
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum
from sqlmodel import Field, SQLModel

from caretree.core.group import GroupData, GroupTree, GroupType


class Group(SQLModel, table=True):
    __tablename__ = "groups"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    type: GroupType = Field(
        default=GroupType.CLINICIAN_GROUP,
        sa_column=Column(
            Enum(
                GroupType,
                name="group_type",
                values_callable=lambda x: [e.value for e in x],
            ),
            nullable=False,
            index=True,
        ),
    )

    # Tree structure. `level` and `path` are derived from `parent_id` by the
    # hierarchy service and must never be edited directly.
    parent_id: int | None = Field(default=None, foreign_key="groups.id", index=True)
    level: int = Field(default=0)
    path: str = Field(default="", index=True)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    deleted_at: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True), nullable=True), default=None
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_core(self) -> GroupData:
        """
        Convert this Group ORM object to a GroupData core object.
        """
        return GroupData(
            id=self.id,
            name=self.name,
            description=self.description,
            type=self.type,
            parent_id=self.parent_id,
            level=self.level,
            path=self.path,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_tree(self, children: list[GroupTree] | None = None) -> GroupTree:
        """
        Convert this Group ORM object to a GroupTree node with the given,
        already converted, children.
        """
        return GroupTree(**self.to_core().model_dump(), children=children or [])
