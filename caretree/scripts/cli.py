"""
A simple CLI for running the server and checking the hierarchy.
"""

import asyncio
import sys

import structlog
import uvicorn

USAGE = "Supported commands are caretree run, caretree setup, or caretree check"


def run_server():
    from caretree.config.settings import Settings

    settings = Settings()
    uvicorn.run("caretree.api.app:app", host=settings.hostname, port=settings.port)


def setup():
    from caretree.config.settings import Settings

    settings = Settings()
    settings.sync_manager().create_all()


async def check() -> bool:
    from caretree.config.settings import Settings
    from caretree.service import groups as groups_service

    settings = Settings()
    manager = settings.async_manager()

    try:
        async with manager.session() as conn:
            async with conn.begin():
                report = await groups_service.validate_integrity(
                    conn=conn, log=structlog.get_logger()
                )
    finally:
        await manager.dispose()

    print(report.model_dump_json(indent=2))

    return report.is_consistent


def main():
    try:
        command = sys.argv[1]
    except IndexError:
        print(USAGE)
        exit(1)

    match command:
        case "run":
            run_server()
        case "setup":
            setup()
            print("Setup complete, tables have been created")
            exit(0)
        case "check":
            consistent = asyncio.run(check())
            exit(0 if consistent else 1)
        case _:
            print(USAGE)
            exit(1)
