"""
Typed failures raised by the hierarchy service.
"""

from sqlalchemy.exc import DBAPIError

# Storage failures are not wrapped; callers see SQLAlchemy's own exceptions.
StorageError = DBAPIError


class HierarchyError(Exception):
    pass


class GroupNotFound(HierarchyError):
    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group with id {group_id} not found")


class ParentNotFound(HierarchyError):
    def __init__(self, parent_id: int):
        self.parent_id = parent_id
        super().__init__(f"Parent group with id {parent_id} not found")


class CycleDetected(HierarchyError):
    def __init__(self, group_id: int | None, parent_id: int):
        self.group_id = group_id
        self.parent_id = parent_id
        super().__init__(
            f"Setting {parent_id} as parent of {group_id} would create a cycle"
        )


class SelfParent(HierarchyError):
    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group {group_id} cannot be its own parent")


class HasChildren(HierarchyError):
    def __init__(self, group_id: int, number_of_children: int):
        self.group_id = group_id
        self.number_of_children = number_of_children
        super().__init__(
            f"Group {group_id} has {number_of_children} child groups; "
            "delete them first or delete with cascade"
        )
