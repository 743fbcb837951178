"""
Tests concurrent writers against the hierarchy. The crossing re-parent test
needs real concurrent transactions, so it only runs against PostgreSQL
(CARETREE_TEST_POSTGRES=1).
"""

import asyncio
import os

import pytest

from caretree.config.settings import Settings
from caretree.core.errors import CycleDetected, StorageError
from caretree.core.group import GroupType, GroupUpdate
from caretree.service import groups as groups_service
from caretree.service import store


def test_isolation_level():
    assert Settings(database_type="sqlite").isolation_level is None
    assert Settings(database_type="postgres").isolation_level == "SERIALIZABLE"
    assert (
        Settings(
            database_type="postgres", database_isolation_level="REPEATABLE READ"
        ).isolation_level
        == "REPEATABLE READ"
    )


@pytest.mark.skipif(
    not os.environ.get("CARETREE_TEST_POSTGRES"),
    reason="Concurrent transactions are only exercised against PostgreSQL",
)
@pytest.mark.asyncio(loop_scope="session")
async def test_crossing_reparents(session_manager, logger, create_group):
    x = await create_group("Hospital X", type=GroupType.HOSPITAL)
    y = await create_group("Hospital Y", type=GroupType.HOSPITAL)

    async def reparent(group_id: int, parent_id: int):
        async with session_manager.session() as conn:
            async with conn.begin():
                await groups_service.update(
                    group_id=group_id,
                    content=GroupUpdate(parent_id=parent_id),
                    conn=conn,
                    log=logger,
                )

    results = await asyncio.gather(
        reparent(x, y), reparent(y, x), return_exceptions=True
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], (CycleDetected, StorageError))

    async with session_manager.session() as conn:
        async with conn.begin():
            group_x = await store.get_or_fail(x, conn)
            group_y = await store.get_or_fail(y, conn)
            assert not (group_x.parent_id == y and group_y.parent_id == x)
            assert group_x.is_root or group_y.is_root

            report = await groups_service.validate_integrity(conn=conn, log=logger)
            assert report.is_consistent
