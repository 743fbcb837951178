"""
Detection of parent assignments that would introduce a cycle.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from . import store

# Stands in for the id of a group that has not been persisted yet.
NEW_GROUP = None


async def would_create_cycle(
    group_id: int | None,
    candidate_parent_id: int,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> bool:
    """
    Check whether making `candidate_parent_id` the parent of `group_id` would
    make the group its own ancestor.

    Parameters
    ----------
    group_id: int | None
        The group being (re-)parented, or `NEW_GROUP` for one that is about
        to be created.
    candidate_parent_id: int
        The proposed parent.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    bool
        True if the assignment is cyclic. Self-parenting is always cyclic; a
        group that does not exist yet has no descendants and so can never be
        part of a cycle.
    """
    log = log.bind(group_id=group_id, candidate_parent_id=candidate_parent_id)

    if group_id == candidate_parent_id:
        await log.adebug("cycle_guard.self_parent")
        return True

    if group_id is NEW_GROUP or not await store.exists(group_id, conn):
        await log.adebug("cycle_guard.new_group")
        return False

    # Walk up from the candidate parent. The walk is bounded by the number of
    # rows so that a corrupted chain cannot loop forever.
    max_steps = await store.count(conn)
    visited = set()
    current = candidate_parent_id

    for _ in range(max_steps + 1):
        if current is None:
            await log.adebug("cycle_guard.reached_root", steps=len(visited))
            return False

        if current == group_id:
            await log.adebug("cycle_guard.cycle_found", steps=len(visited))
            return True

        if current in visited:
            await log.awarning("cycle_guard.corrupt_chain", at_group_id=current)
            return True

        visited.add(current)
        found, current = await store.parent_id_of(current, conn)

        if not found:
            # Chain leads to a missing or deleted row; it cannot reach back
            # to `group_id` from here.
            await log.awarning("cycle_guard.broken_chain", steps=len(visited))
            return False

    await log.awarning("cycle_guard.walk_exhausted", steps=len(visited))
    return True
