"""
Core group data models.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class GroupType(str, Enum):
    HOSPITAL = "hospital"
    CLINICIAN_GROUP = "clinician_group"


class GroupCreate(BaseModel):
    """
    Fields accepted when creating a new group.
    """

    name: str = Field(min_length=2, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    type: GroupType = GroupType.CLINICIAN_GROUP
    parent_id: int | None = None
    is_active: bool = True


class GroupUpdate(BaseModel):
    """
    Fields accepted when updating a group. Only fields that are explicitly
    set are applied; an explicit ``parent_id=None`` turns the group into a root.
    """

    name: str | None = Field(default=None, min_length=2, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    type: GroupType | None = None
    parent_id: int | None = None
    is_active: bool | None = None


class GroupFilter(BaseModel):
    type: GroupType | None = None
    is_active: bool | None = None
    level: int | None = Field(default=None, ge=0)
    # The literal "null" selects root groups.
    parent_id: int | Literal["null"] | None = None
    search: str | None = None
    offset: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, ge=1)


class GroupData(BaseModel):
    id: int
    name: str
    description: str | None
    type: GroupType
    parent_id: int | None
    level: int
    path: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class GroupTree(GroupData):
    children: list["GroupTree"] = []


class AncestryData(BaseModel):
    group: GroupData
    ancestors: list[GroupData]
    full_path: str


class IntegrityReport(BaseModel):
    """
    Result of the read-only hierarchy scan. Each list holds group ids.
    """

    orphaned_groups: list[int] = []
    incorrect_levels: list[int] = []
    incorrect_paths: list[int] = []

    @property
    def is_consistent(self) -> bool:
        return not (self.orphaned_groups or self.incorrect_levels or self.incorrect_paths)
