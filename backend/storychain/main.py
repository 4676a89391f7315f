"""StoryChain Backend Application.

Collaborative storytelling: users append short contributions to story
chains, optionally inside rooms, and every connected member of a room
sees new contributions live.

Modules:
    - realtime: WebSocket room registry, broadcast dispatcher, connection handler
    - stories: story persistence, chains, hearts
    - rooms: story rooms and join codes
    - auth / admin / users: accounts, JWT login, moderation, profiles
    - themes / community: writing prompts, stats, featured picks
    - passwords: password strength checker
    - ai: story continuation suggestions
    - export: PDF / PNG downloads of a chain
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storychain.admin.router import router as admin_router
from storychain.ai.router import router as ai_router
from storychain.auth.router import router as auth_router
from storychain.community.router import router as community_router
from storychain.config import get_config
from storychain.db import get_database
from storychain.export.router import router as export_router
from storychain.passwords.router import router as passwords_router
from storychain.realtime.registry import registry
from storychain.realtime.router import router as realtime_router
from storychain.rooms.router import router as rooms_router
from storychain.stories.router import router as stories_router
from storychain.themes.service import ThemeService
from storychain.themes.router import router as themes_router
from storychain.users.router import router as users_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# httpx/httpcore log every connection; uvicorn.access logs every request
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "uvicorn.access",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in storychain.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    db = get_database()
    ThemeService(db).seed_defaults()

    if config.ai.enabled and not config.secrets.ai.api_key:
        logger.warning("AI continuation enabled but no API key configured; requests will get 503")
    else:
        logger.info(f"AI continuation {'enabled' if config.ai.enabled else 'disabled'}")

    logger.info(
        f"Server running on http://{config.server.host}:{config.server.port} (db={db.path})"
    )

    yield  # Application runs here

    # Shutdown
    registry.clear()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="StoryChain API",
    description="Backend service for StoryChain - collaborative real-time storytelling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(realtime_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(rooms_router)
app.include_router(stories_router)
app.include_router(themes_router)
app.include_router(community_router)
app.include_router(passwords_router)
app.include_router(ai_router)
app.include_router(export_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
