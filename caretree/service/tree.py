"""
Read-side reconstruction of the hierarchy: ancestor chains, subtrees and
the full nested forest, built from the flat group table.
"""

from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from caretree.core.group import GroupTree
from caretree.core.hierarchy import FULL_PATH_DELIMITER, join_names
from caretree.database.group import Group

from . import store


async def ancestors_of(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[Group]:
    """
    Get the ancestors of a group.

    Parameters
    ----------
    group: Group
        The group to start from.
    conn: AsyncSession
        The database session.
    log: FilteringBoundLogger
        Logger instance.

    Returns
    -------
    list[Group]
        The ancestors, from the immediate parent up to the root. Empty for a
        root group.
    """
    log = log.bind(group_id=group.id)

    ancestors = []
    visited = {group.id}
    max_steps = await store.count(conn)
    parent_id = group.parent_id

    while parent_id is not None and len(ancestors) <= max_steps:
        if parent_id in visited:
            await log.awarning("tree.ancestors.cycle", at_group_id=parent_id)
            break

        parent = await store.get(parent_id, conn)
        if parent is None:
            await log.awarning("tree.ancestors.broken_chain", missing_id=parent_id)
            break

        ancestors.append(parent)
        visited.add(parent_id)
        parent_id = parent.parent_id

    await log.adebug("tree.ancestors.found", number_of_ancestors=len(ancestors))
    return ancestors


async def root_of(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    ancestors = await ancestors_of(group, conn, log)
    return ancestors[-1] if ancestors else group


async def is_ancestor_of(
    ancestor: Group,
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> bool:
    return any(x.id == ancestor.id for x in await ancestors_of(group, conn, log))


async def is_descendant_of(
    group: Group,
    ancestor: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> bool:
    return await is_ancestor_of(ancestor, group, conn, log)


async def is_leaf(group: Group, conn: AsyncSession) -> bool:
    return not await store.has_children(group.id, conn)


async def full_path(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    delimiter: str = FULL_PATH_DELIMITER,
) -> str:
    """
    Human-readable chain of names from the root down to `group`, e.g.
    "General Hospital > Cardiology".
    """
    ancestors = await ancestors_of(group, conn, log)
    names = [x.name for x in reversed(ancestors)] + [group.name]
    return join_names(names, delimiter=delimiter)


async def descendants_of(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[Group]:
    """
    Get all live descendants of a group, in post-order: every group appears
    after all of its own descendants. The group itself is not included.
    """
    log = log.bind(group_id=group.id)

    descendants = []
    visited = {group.id}
    # Each entry is (group, children already expanded).
    stack = [(group, False)]

    while stack:
        current, expanded = stack.pop()

        if expanded:
            if current.id != group.id:
                descendants.append(current)
            continue

        stack.append((current, True))
        for child in await store.children_of(current.id, conn):
            if child.id in visited:
                await log.awarning("tree.descendants.cycle", at_group_id=child.id)
                continue
            visited.add(child.id)
            stack.append((child, False))

    await log.adebug("tree.descendants.found", number_of_descendants=len(descendants))
    return descendants


def _assemble(
    group: Group, children_by_parent: dict[int, list[Group]], visited: set[int]
) -> GroupTree:
    visited.add(group.id)
    children = [
        _assemble(child, children_by_parent, visited)
        for child in children_by_parent.get(group.id, [])
        if child.id not in visited
    ]
    return group.to_tree(children=children)


async def _children_index(conn: AsyncSession) -> dict[int | None, list[Group]]:
    children_by_parent = defaultdict(list)
    for group in await store.all_groups(conn):
        children_by_parent[group.parent_id].append(group)
    return children_by_parent


async def full_tree(
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> list[GroupTree]:
    """
    Get every live group as a forest of nested trees.

    Returns
    -------
    list[GroupTree]
        One entry per root group, each carrying its subtree. Empty if there
        are no groups.
    """
    children_by_parent = await _children_index(conn)
    visited = set()
    roots = [
        _assemble(root, children_by_parent, visited)
        for root in children_by_parent.get(None, [])
    ]
    await log.adebug("tree.assembled", number_of_roots=len(roots))
    return roots


async def subtree(
    group: Group,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> GroupTree:
    """
    Get a single group with its nested descendants.
    """
    children_by_parent = await _children_index(conn)
    tree = _assemble(group, children_by_parent, set())
    await log.adebug("tree.subtree_assembled", group_id=group.id)
    return tree
