import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from dal.collection_dal import CollectionDAL
from dal.image_archive_dal import ImageArchive
from routes.image_route import router as image_router
from routes.object_route import router as object_router
from services.collection_repository import CollectionRepository
from services.image_service import ImageService
from services.world import InMemoryWorld
from utils.database_init import AsyncDatabaseInitializer
from utils.permissions import StaticPermissionOracle
from utils.settings import Settings

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database (at DATABASE_DIR/image_store.db) and bitmap archive
      - the collection repository, loaded from the database
      - the image service and the host world
      - the background purge and persist loops
    and attach them to `app.state`. On shutdown the loops are cancelled and
    the collections are written back to the database.
    """
    settings: Settings = app.state.settings
    db_initializer = AsyncDatabaseInitializer(app.state.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    repository = CollectionRepository(CollectionDAL(db_initializer))
    await repository.load()

    world = InMemoryWorld()
    service = ImageService(
        repository,
        locator=world,
        textures=world,
        archive=ImageArchive(db_initializer.images_dir),
        settings=settings,
        oracle=StaticPermissionOracle.from_settings(settings),
    )
    app.state.world = world
    app.state.image_service = service

    tasks = []
    if settings.purge_interval > 0:
        tasks.append(asyncio.create_task(service.purge_scheduler.run_periodic(settings.purge_interval)))
    if settings.persist_interval > 0:
        tasks.append(asyncio.create_task(repository.run_periodic_persist(settings.persist_interval)))

    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        try:
            await repository.persist()
        except Exception:
            LOGGER.exception("Failed to persist collections on shutdown")


def create_app(settings: Optional[Settings] = None, database_dir: Optional[str] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        settings: Quota/cooldown/purge options; read from the environment when omitted.
        database_dir: Directory for the database and archive; DATABASE_DIR when omitted.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings or Settings.from_env()
    app.state.database_dir = database_dir

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports whether the image service is ready.
        """
        service = getattr(request.app.state, "image_service", None)
        return {
            "ok": True,
            "db_initialized": hasattr(request.app.state, "db_initializer"),
            "service_ready": service is not None,
            "users": len(service.repository.user_collections) if service else 0,
        }

    # Register application routers
    app.include_router(image_router)
    app.include_router(object_router)

    return app


app = create_app()
