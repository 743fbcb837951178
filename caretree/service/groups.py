"""
Service layer for groups: creation, re-parenting, deletion and listing,
keeping the hierarchy consistent.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from caretree.core.errors import (
    CycleDetected,
    GroupNotFound,
    HasChildren,
    ParentNotFound,
    SelfParent,
)
from caretree.core.group import GroupCreate, GroupFilter, GroupUpdate, IntegrityReport
from caretree.core.hierarchy import PATH_SEPARATOR, derive
from caretree.database.group import Group

from . import store
from . import tree as tree_service
from .cycles import NEW_GROUP, would_create_cycle

# Fields that cannot be cleared; an explicit None for these is ignored.
REQUIRED_FIELDS = {"name", "type", "is_active"}


async def _resolve_parent(
    parent_id: int, conn: AsyncSession, log: FilteringBoundLogger
) -> Group:
    parent = await store.get(parent_id, conn)
    if parent is None:
        await log.ainfo("group.parent_not_found")
        raise ParentNotFound(parent_id)
    return parent


async def create(
    content: GroupCreate,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Create a new group, deriving its level and path from its parent.

    Parameters
    ----------
    content: GroupCreate
        The validated fields of the new group.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Raises
    ------
    ParentNotFound
        If `parent_id` is given and does not refer to a live group.
    CycleDetected
        If the parent assignment would create a cycle.
    """
    log = log.bind(
        group_name=content.name,
        group_type=content.type,
        parent_id=content.parent_id,
    )

    async with store.atomic(conn):
        parent = None

        if content.parent_id is not None:
            parent = await _resolve_parent(content.parent_id, conn, log)

            if await would_create_cycle(NEW_GROUP, content.parent_id, conn, log):
                await log.ainfo("group.cycle_detected")
                raise CycleDetected(NEW_GROUP, content.parent_id)

        group = await store.create(content, conn)
        group.level, group.path = derive(group.id, parent)
        await store.save(group, conn)

    await log.ainfo("group.created", group_id=group.id, level=group.level)

    return group


async def read_by_id(
    group_id: int,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its ID.

    Raises
    ------
    GroupNotFound
        If the group does not exist or has been deleted.
    """
    log = log.bind(group_id=group_id)
    group = await store.get(group_id, conn)
    if group is None:
        await log.ainfo("group.not_found")
        raise GroupNotFound(group_id)
    await log.adebug("group.found")
    return group


async def get_children(
    group_id: int,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[Group]:
    group = await read_by_id(group_id, conn, log)
    return await store.children_of(group.id, conn)


async def get_group_list(
    conn: AsyncSession,
    log: FilteringBoundLogger,
    filters: GroupFilter | None = None,
) -> list[Group]:
    """
    Get a list of live groups, optionally filtered.

    Parameters
    ----------
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.
    filters: GroupFilter | None
        Optional filters. `parent_id="null"` selects root groups; `search`
        matches a case-insensitive substring of the name or description.

    Returns
    -------
    list[Group]
        Matching groups, ordered by id.
    """
    filters = filters or GroupFilter()
    log = log.bind(**filters.model_dump(exclude_none=True))

    query = select(Group).where(store.live())

    if filters.type is not None:
        query = query.where(Group.type == filters.type)

    if filters.is_active is not None:
        query = query.where(Group.is_active == filters.is_active)

    if filters.level is not None:
        query = query.where(Group.level == filters.level)

    if filters.parent_id == "null":
        query = query.where(Group.parent_id.is_(None))
    elif filters.parent_id is not None:
        query = query.where(Group.parent_id == filters.parent_id)

    if filters.search:
        search = filters.search.lower()
        query = query.where(
            or_(
                func.lower(Group.name).contains(search, autoescape=True),
                func.lower(Group.description).contains(search, autoescape=True),
            )
        )

    query = query.order_by(Group.id).offset(filters.offset)
    if filters.limit is not None:
        query = query.limit(filters.limit)

    result = await conn.execute(query)
    groups = list(result.scalars().all())
    await log.adebug("group.listed", number_of_groups=len(groups))
    return groups


async def _rederive_subtree(
    group: Group,
    parent: Group | None,
    conn: AsyncSession,
    log: FilteringBoundLogger,
):
    """
    Stamp new level and path values on `group` and every live descendant.
    """
    group.level, group.path = derive(group.id, parent)
    await store.save(group, conn)

    descendants = await tree_service.descendants_of(group, conn, log)
    by_id = {group.id: group, **{x.id: x for x in descendants}}

    # Reversed post-order visits every parent before its children.
    for descendant in reversed(descendants):
        descendant.level, descendant.path = derive(
            descendant.id, by_id[descendant.parent_id]
        )
        await store.save(descendant, conn)

    await log.adebug("group.subtree_rederived", number_of_descendants=len(descendants))


async def update(
    group_id: int,
    content: GroupUpdate,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Update a group. Only the fields explicitly set on `content` are applied.
    When the parent changes, the level and path of the group and its whole
    subtree are re-derived.

    Parameters
    ----------
    group_id: int
        The ID of the group to update.
    content: GroupUpdate
        The fields to change.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    SelfParent
        If the group is assigned as its own parent.
    ParentNotFound
        If the new parent does not refer to a live group.
    CycleDetected
        If the new parent is one of the group's descendants.
    """
    fields = content.model_dump(exclude_unset=True)
    log = log.bind(group_id=group_id, fields=sorted(fields))

    async with store.atomic(conn):
        group = await read_by_id(group_id, conn, log)

        reparent = "parent_id" in fields and fields["parent_id"] != group.parent_id
        parent = None

        if reparent:
            new_parent_id = fields["parent_id"]
            log = log.bind(old_parent_id=group.parent_id, new_parent_id=new_parent_id)

            if new_parent_id == group.id:
                await log.ainfo("group.self_parent")
                raise SelfParent(group.id)

            if new_parent_id is not None:
                parent = await _resolve_parent(new_parent_id, conn, log)

                if await would_create_cycle(group.id, new_parent_id, conn, log):
                    await log.ainfo("group.cycle_detected")
                    raise CycleDetected(group.id, new_parent_id)

        for key, value in fields.items():
            if value is None and key in REQUIRED_FIELDS:
                continue
            setattr(group, key, value)

        if reparent:
            await _rederive_subtree(group, parent, conn, log)
        else:
            await store.save(group, conn)

    await log.ainfo("group.updated", reparented=reparent)

    return group


async def delete(
    group_id: int,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    cascade: bool = False,
) -> bool:
    """
    Soft delete a group.

    Parameters
    ----------
    group_id: int
        The ID of the group to delete.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.
    cascade: bool
        Also delete every descendant. Without it, a group with live children
        cannot be deleted.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    HasChildren
        If the group has live children and `cascade` is not set.
    """
    log = log.bind(group_id=group_id, cascade=cascade)

    async with store.atomic(conn):
        group = await read_by_id(group_id, conn, log)

        number_of_children = await store.count_children(group.id, conn)
        descendants = []

        if number_of_children > 0:
            if not cascade:
                await log.ainfo("group.delete.has_children", number_of_children=number_of_children)
                raise HasChildren(group.id, number_of_children)

            # Post-order: each group goes only after all of its descendants.
            descendants = await tree_service.descendants_of(group, conn, log)
            for descendant in descendants:
                await store.soft_delete(descendant, conn)

        deleted = await store.soft_delete(group, conn)

    await log.ainfo("group.deleted", number_of_descendants=len(descendants))

    return deleted


async def validate_integrity(
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> IntegrityReport:
    """
    Scan every live group for broken hierarchy invariants. This is a
    read-only diagnostic; nothing is repaired.

    Returns
    -------
    IntegrityReport
        Ids of groups whose parent is missing or deleted, whose level does
        not follow from their parent's, and whose path does not match the
        one derived from the parent chain.
    """
    rows = {x.id: x for x in await store.all_groups(conn, include_deleted=True)}
    live = [x for x in rows.values() if not x.is_deleted]

    report = IntegrityReport()

    for group in live:
        if group.is_root:
            if group.level != 0:
                report.incorrect_levels.append(group.id)
            continue

        parent = rows.get(group.parent_id)
        if parent is None or parent.is_deleted:
            report.orphaned_groups.append(group.id)
        elif group.level != parent.level + 1:
            report.incorrect_levels.append(group.id)

    orphaned = set(report.orphaned_groups)

    for group in live:
        if group.id in orphaned:
            continue

        chain = [group.id]
        current = group
        while current.parent_id is not None and len(chain) <= len(rows):
            current = rows.get(current.parent_id)
            if current is None:
                break
            chain.append(current.id)

        expected = PATH_SEPARATOR.join(str(x) for x in reversed(chain))
        if group.path != expected:
            report.incorrect_paths.append(group.id)

    report.orphaned_groups.sort()
    report.incorrect_levels.sort()
    report.incorrect_paths.sort()

    log = log.bind(
        number_of_groups=len(live),
        orphaned_groups=len(report.orphaned_groups),
        incorrect_levels=len(report.incorrect_levels),
        incorrect_paths=len(report.incorrect_paths),
    )

    if report.is_consistent:
        await log.adebug("group.integrity.ok")
    else:
        await log.awarning("group.integrity.issues_found")

    return report
