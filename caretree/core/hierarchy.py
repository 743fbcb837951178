"""
Derivation of the denormalized tree fields (level and materialized path).

These are pure functions: the path is a cache of the parent chain and is
always recomputed from ``parent_id``, never read back as a source of truth.
"""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from caretree.database.group import Group

PATH_SEPARATOR = "/"
FULL_PATH_DELIMITER = " > "


def derive(group_id: int, parent: "Group | None") -> tuple[int, str]:
    """
    Compute the level and path of a group from its (resolved) parent.

    Parameters
    ----------
    group_id: int
        The id of the group itself. Must already be assigned, as the path
        ends with it.
    parent: Group | None
        The parent group, or None for a root.

    Returns
    -------
    tuple[int, str]
        The level and the materialized path.
    """
    if group_id is None:
        raise ValueError("Cannot derive a path before the group id is assigned")

    if parent is None:
        return 0, str(group_id)

    return parent.level + 1, f"{parent.path}{PATH_SEPARATOR}{group_id}"


def parent_path(path: str) -> str:
    """
    The path of the parent, i.e. ``path`` with its last segment removed.
    Empty for a root.
    """
    head, _, _ = path.rpartition(PATH_SEPARATOR)
    return head


def path_ids(path: str) -> list[int]:
    if not path:
        return []
    return [int(x) for x in path.split(PATH_SEPARATOR)]


def join_names(names: Iterable[str], delimiter: str = FULL_PATH_DELIMITER) -> str:
    return delimiter.join(names)
