"""
Group management.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response

from caretree.api.dependencies import DatabaseDependency, LoggerDependency
from caretree.core.group import (
    AncestryData,
    GroupCreate,
    GroupData,
    GroupFilter,
    GroupTree,
    GroupUpdate,
    IntegrityReport,
)
from caretree.service import groups as groups_service
from caretree.service import tree as tree_service

group_app = APIRouter(tags=["Group Management"])


@group_app.get(
    "",
    summary="List groups",
    description=(
        "Retrieve a flat list of groups, optionally filtered by type, active "
        "status, level or parent. Use parent_id=null to list root groups."
    ),
    responses={
        200: {"description": "List of groups."},
        422: {"description": "Invalid filter."},
    },
)
async def list_groups(
    filters: Annotated[GroupFilter, Query()],
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[GroupData]:
    groups = await groups_service.get_group_list(conn=conn, log=log, filters=filters)
    return [g.to_core() for g in groups]


@group_app.get(
    "/tree",
    summary="Get the full hierarchy",
    description="Retrieve every root group with its nested descendants.",
    responses={
        200: {"description": "The forest of groups."},
    },
)
async def get_tree(
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[GroupTree]:
    return await tree_service.full_tree(conn=conn, log=log)


@group_app.get(
    "/integrity",
    summary="Validate the hierarchy",
    description=(
        "Scan the hierarchy for orphaned groups and for groups whose level or "
        "path does not follow from their parent. Nothing is repaired."
    ),
    responses={
        200: {"description": "The integrity report."},
    },
)
async def validate_integrity(
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> IntegrityReport:
    return await groups_service.validate_integrity(conn=conn, log=log)


@group_app.get(
    "/{group_id}",
    summary="Get group by ID",
    responses={
        200: {"description": "Group details."},
        404: {"description": "Group not found."},
    },
)
async def get_group_by_id(
    group_id: int,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    return group.to_core()


@group_app.get(
    "/{group_id}/children",
    summary="Get the direct children of a group",
    responses={
        200: {"description": "List of child groups."},
        404: {"description": "Group not found."},
    },
)
async def get_group_children(
    group_id: int,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[GroupData]:
    children = await groups_service.get_children(group_id=group_id, conn=conn, log=log)
    return [c.to_core() for c in children]


@group_app.get(
    "/{group_id}/subtree",
    summary="Get a group with its nested descendants",
    responses={
        200: {"description": "The subtree rooted at the group."},
        404: {"description": "Group not found."},
    },
)
async def get_group_subtree(
    group_id: int,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupTree:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    return await tree_service.subtree(group=group, conn=conn, log=log)


@group_app.get(
    "/{group_id}/ancestors",
    summary="Get the ancestor chain of a group",
    description=(
        "Retrieve the ancestors of a group from its immediate parent up to the "
        "root, along with a human-readable path such as "
        "'General Hospital > Cardiology'."
    ),
    responses={
        200: {"description": "The ancestor chain."},
        404: {"description": "Group not found."},
    },
)
async def get_group_ancestors(
    group_id: int,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> AncestryData:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    ancestors = await tree_service.ancestors_of(group=group, conn=conn, log=log)
    full_path = await tree_service.full_path(group=group, conn=conn, log=log)

    return AncestryData(
        group=group.to_core(),
        ancestors=[a.to_core() for a in ancestors],
        full_path=full_path,
    )


@group_app.post(
    "",
    summary="Create a new group",
    status_code=201,
    responses={
        201: {"description": "Group created successfully."},
        422: {"description": "Invalid input, missing parent or cyclic parent."},
    },
)
async def create_group(
    content: GroupCreate,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    group = await groups_service.create(content=content, conn=conn, log=log)
    return group.to_core()


@group_app.patch(
    "/{group_id}",
    summary="Update a group",
    description=(
        "Update the given fields of a group. Changing parent_id moves the group "
        "and its whole subtree; setting it to null makes the group a root."
    ),
    responses={
        200: {"description": "Group updated successfully."},
        404: {"description": "Group not found."},
        422: {"description": "Invalid input, missing parent or cyclic parent."},
    },
)
async def update_group(
    group_id: int,
    content: GroupUpdate,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    group = await groups_service.update(
        group_id=group_id, content=content, conn=conn, log=log
    )
    return group.to_core()


@group_app.delete(
    "/{group_id}",
    summary="Delete a group",
    description=(
        "Soft delete a group. Groups with children can only be deleted with "
        "cascade=true, which also deletes every descendant."
    ),
    status_code=204,
    responses={
        204: {"description": "Group deleted successfully."},
        404: {"description": "Group not found."},
        409: {"description": "Group has children and cascade was not requested."},
    },
)
async def delete_group(
    group_id: int,
    conn: DatabaseDependency,
    log: LoggerDependency,
    cascade: bool = False,
) -> Response:
    await groups_service.delete(group_id=group_id, conn=conn, log=log, cascade=cascade)
    return Response(status_code=204)
