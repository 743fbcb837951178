"""
Tests the read-side tree assembly.
"""

import pytest

from caretree.core.group import GroupType
from caretree.service import groups as groups_service
from caretree.service import store
from caretree.service import tree as tree_service


@pytest.mark.asyncio(loop_scope="session")
async def test_empty_tree(session_manager, logger, database):
    async with session_manager.session() as conn:
        async with conn.begin():
            assert await tree_service.full_tree(conn=conn, log=logger) == []


@pytest.mark.asyncio(loop_scope="session")
async def test_forest(session_manager, logger, create_group):
    first = await create_group("First Hospital", type=GroupType.HOSPITAL)
    first_child = await create_group("Cardiology", parent_id=first)
    first_grandchild = await create_group("Echo Lab", parent_id=first_child)
    second = await create_group("Second Hospital", type=GroupType.HOSPITAL)
    second_child = await create_group("Surgery", parent_id=second)

    async with session_manager.session() as conn:
        async with conn.begin():
            forest = await tree_service.full_tree(conn=conn, log=logger)

    assert [x.id for x in forest] == [first, second]

    first_tree, second_tree = forest
    assert [x.id for x in first_tree.children] == [first_child]
    assert [x.id for x in first_tree.children[0].children] == [first_grandchild]
    assert first_tree.children[0].children[0].children == []

    assert [x.id for x in second_tree.children] == [second_child]
    assert second_tree.children[0].children == []


@pytest.mark.asyncio(loop_scope="session")
async def test_tree_excludes_deleted(session_manager, logger, chain):
    async with session_manager.session() as conn:
        async with conn.begin():
            await groups_service.delete(group_id=chain["c"], conn=conn, log=logger)

    async with session_manager.session() as conn:
        async with conn.begin():
            forest = await tree_service.full_tree(conn=conn, log=logger)

            assert len(forest) == 1
            assert forest[0].children[0].id == chain["b"]
            assert forest[0].children[0].children == []


@pytest.mark.asyncio(loop_scope="session")
async def test_ancestors(session_manager, logger, chain):
    async with session_manager.session() as conn:
        async with conn.begin():
            a = await store.get_or_fail(chain["a"], conn)
            b = await store.get_or_fail(chain["b"], conn)
            c = await store.get_or_fail(chain["c"], conn)

            ancestors = await tree_service.ancestors_of(c, conn=conn, log=logger)
            assert [x.id for x in ancestors] == [chain["b"], chain["a"]]
            assert await tree_service.ancestors_of(a, conn=conn, log=logger) == []

            assert (await tree_service.root_of(c, conn=conn, log=logger)).id == a.id
            assert (await tree_service.root_of(a, conn=conn, log=logger)).id == a.id

            assert await tree_service.is_ancestor_of(a, c, conn=conn, log=logger)
            assert not await tree_service.is_ancestor_of(c, a, conn=conn, log=logger)
            assert await tree_service.is_descendant_of(c, a, conn=conn, log=logger)
            assert await tree_service.is_descendant_of(b, a, conn=conn, log=logger)
            assert not await tree_service.is_descendant_of(a, c, conn=conn, log=logger)
            assert not await tree_service.is_descendant_of(a, a, conn=conn, log=logger)

            assert await tree_service.is_leaf(c, conn=conn)
            assert not await tree_service.is_leaf(b, conn=conn)

            assert (
                await tree_service.full_path(c, conn=conn, log=logger)
                == "Hospital A > Department B > Team C"
            )
            assert await tree_service.full_path(a, conn=conn, log=logger) == "Hospital A"
            assert (
                await tree_service.full_path(b, conn=conn, log=logger, delimiter=" / ")
                == "Hospital A / Department B"
            )


@pytest.mark.asyncio(loop_scope="session")
async def test_descendants_post_order(session_manager, logger, chain, create_group):
    sibling = await create_group("Team C2", parent_id=chain["b"])
    leaf = await create_group("Team C2 Night Shift", parent_id=sibling)

    async with session_manager.session() as conn:
        async with conn.begin():
            a = await store.get_or_fail(chain["a"], conn)
            descendants = await tree_service.descendants_of(a, conn=conn, log=logger)

            order = [x.id for x in descendants]
            assert sorted(order) == sorted([chain["b"], chain["c"], sibling, leaf])

            # Every group comes after all of its descendants
            assert order[-1] == chain["b"]
            assert order.index(leaf) < order.index(sibling)
            assert order.index(chain["c"]) < order.index(chain["b"])

            c = await store.get_or_fail(chain["c"], conn)
            assert await tree_service.descendants_of(c, conn=conn, log=logger) == []


@pytest.mark.asyncio(loop_scope="session")
async def test_subtree(session_manager, logger, chain):
    async with session_manager.session() as conn:
        async with conn.begin():
            b = await store.get_or_fail(chain["b"], conn)
            subtree = await tree_service.subtree(b, conn=conn, log=logger)

    assert subtree.id == chain["b"]
    assert subtree.level == 1
    assert [x.id for x in subtree.children] == [chain["c"]]
    assert subtree.children[0].path == f"{chain['a']}/{chain['b']}/{chain['c']}"
