"""
Storage access for group rows, including soft deletion.

Every read here excludes soft-deleted rows unless ``include_deleted`` is set.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from caretree.core.errors import GroupNotFound
from caretree.core.group import GroupCreate, GroupType
from caretree.database.group import Group


def now() -> datetime:
    return datetime.now(tz=timezone.utc)


def atomic(conn: AsyncSession) -> AsyncSessionTransaction:
    """
    Open a unit of work on the session: a transaction when none is active,
    otherwise a SAVEPOINT inside the caller's transaction. Either way, an
    exception leaving the block discards every write made inside it.
    """
    if conn.in_transaction():
        return conn.begin_nested()
    return conn.begin()


def live():
    return Group.deleted_at.is_(None)


async def get(
    group_id: int, conn: AsyncSession, include_deleted: bool = False
) -> Group | None:
    query = select(Group).where(Group.id == group_id)
    if not include_deleted:
        query = query.where(live())
    result = await conn.execute(query)
    return result.scalar_one_or_none()


async def get_or_fail(group_id: int, conn: AsyncSession) -> Group:
    """
    Read a live group by its ID.

    Raises
    ------
    GroupNotFound
        If the group does not exist or has been soft deleted.
    """
    group = await get(group_id, conn)
    if group is None:
        raise GroupNotFound(group_id)
    return group


async def exists(group_id: int, conn: AsyncSession) -> bool:
    result = await conn.execute(
        select(func.count()).select_from(Group).where(Group.id == group_id, live())
    )
    return result.scalar_one() > 0


async def count(conn: AsyncSession, include_deleted: bool = True) -> int:
    query = select(func.count()).select_from(Group)
    if not include_deleted:
        query = query.where(live())
    result = await conn.execute(query)
    return result.scalar_one()


async def parent_id_of(group_id: int, conn: AsyncSession) -> tuple[bool, int | None]:
    """
    Look up only the parent reference of a live group.

    Returns
    -------
    tuple[bool, int | None]
        Whether the group was found, and its parent id.
    """
    result = await conn.execute(
        select(Group.parent_id).where(Group.id == group_id, live())
    )
    row = result.one_or_none()
    if row is None:
        return False, None
    return True, row[0]


async def create(content: GroupCreate, conn: AsyncSession) -> Group:
    """
    Insert a new group and flush so that its id is assigned. The derived
    tree fields are left for the caller to stamp.
    """
    timestamp = now()
    group = Group(
        name=content.name,
        description=content.description,
        type=content.type if content.type is not None else GroupType.CLINICIAN_GROUP,
        parent_id=content.parent_id,
        is_active=content.is_active if content.is_active is not None else True,
        created_at=timestamp,
        updated_at=timestamp,
    )
    conn.add(group)
    await conn.flush()
    return group


async def save(group: Group, conn: AsyncSession) -> Group:
    group.updated_at = now()
    conn.add(group)
    await conn.flush()
    return group


async def soft_delete(group: Group, conn: AsyncSession) -> bool:
    if group.is_deleted:
        return False

    group.deleted_at = now()
    await save(group, conn)
    return True


async def children_of(group_id: int, conn: AsyncSession) -> list[Group]:
    result = await conn.execute(
        select(Group).where(Group.parent_id == group_id, live()).order_by(Group.id)
    )
    return list(result.scalars().all())


async def count_children(group_id: int, conn: AsyncSession) -> int:
    result = await conn.execute(
        select(func.count())
        .select_from(Group)
        .where(Group.parent_id == group_id, live())
    )
    return result.scalar_one()


async def has_children(group_id: int, conn: AsyncSession) -> bool:
    return await count_children(group_id, conn) > 0


async def all_groups(conn: AsyncSession, include_deleted: bool = False) -> list[Group]:
    query = select(Group).order_by(Group.id)
    if not include_deleted:
        query = query.where(live())
    result = await conn.execute(query)
    return list(result.scalars().all())
