"""
Configuration variables and fixtures for the service layer tests.
"""

import pytest_asyncio

from caretree.core.group import GroupCreate, GroupType
from caretree.service import groups as groups_service


@pytest_asyncio.fixture
async def create_group(session_manager, logger, database):
    """
    Returns a function that creates a group in its own transaction and gives
    back its id.
    """

    async def create(
        name: str,
        parent_id: int | None = None,
        type: GroupType = GroupType.CLINICIAN_GROUP,
        **kwargs,
    ) -> int:
        async with session_manager.session() as conn:
            async with conn.begin():
                group = await groups_service.create(
                    content=GroupCreate(
                        name=name, parent_id=parent_id, type=type, **kwargs
                    ),
                    conn=conn,
                    log=logger,
                )
                return group.id

    yield create


@pytest_asyncio.fixture
async def chain(create_group):
    """
    A three group chain: C's parent is B, B's parent is A.
    """
    a = await create_group("Hospital A", type=GroupType.HOSPITAL)
    b = await create_group("Department B", parent_id=a)
    c = await create_group("Team C", parent_id=b)

    yield {"a": a, "b": b, "c": c}
