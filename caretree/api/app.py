"""
FastAPI app
"""

from datetime import datetime, timezone
from importlib.metadata import version

from fastapi import FastAPI

from .dependencies import DATABASE_MANAGER, SETTINGS, logger
from .groups import group_app
from .handlers import add_exception_handlers

settings = SETTINGS()


async def lifespan(app: FastAPI):
    app.settings = settings

    if settings.create_tables:
        await DATABASE_MANAGER.create_all()
        await logger().ainfo("api.tables_created")

    yield

    await DATABASE_MANAGER.dispose()


app = FastAPI(
    lifespan=lifespan,
    title="caretree API",
    summary="Hierarchy management for hospitals and clinician groups.",
    version=version("caretree"),
)

app = add_exception_handlers(app)

app.include_router(group_app, prefix="/groups")


@app.get("/health", tags=["Health"])
async def health() -> dict[str, str | bool]:
    return {
        "success": True,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }
