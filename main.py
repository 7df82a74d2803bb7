import logfire

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contextlib import asynccontextmanager

import redis.asyncio

from middleware.authentication import AuthMiddleware
from middleware.authorization import AuthorizationMiddleware
from middleware.error_handling import register_exception_handlers
from middleware.rate_limiting import RateLimiter, RateLimitMiddleware, RateLimitRule

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from security.denylist import Denylist
from security.keystore import KeyStore
from security.passwords import PasswordHasher
from security.policy import PolicyGate
from security.tokens import TokenCodec

from services.auth import AuthService
from services.directory import UserDirectory
from services.storage import MemoryStore, MongoStore

from utils.logger import configure_logging, instrument_libraries
from utils.settings import Settings, load_settings

from routers import admin, artists, artwork_query, artworks, auth, cart, dashboard, debug, orders, reviews, users, wishlist


AUTH_PREFIX = "/api/auth/"
CREDENTIAL_PATHS = ("/api/auth/login", "/api/auth/register")


def build_rate_limit_rules(settings: Settings) -> list:
    """Blanket limit on the auth prefix, then the tighter login/register limit."""
    window = settings.rate_limit_auth_window_seconds
    return [
        RateLimitRule(
            name="auth",
            prefixes=(AUTH_PREFIX,),
            limiter=RateLimiter(settings.rate_limit_auth_capacity, window),
        ),
        RateLimitRule(
            name="credentials",
            prefixes=CREDENTIAL_PATHS,
            limiter=RateLimiter(settings.rate_limit_login_capacity, window),
            message="Too many authentication attempts. Please try again later.",
        ),
    ]


def create_app(settings: Settings = None, *, store=None, redis_client=None) -> FastAPI:
    """Wire the application.

    Args:
        settings: Defaults to the environment. An invalid `JWT_SECRET` is fatal here.
        store: Storage backend. Defaults to `MemoryStore` or `MongoStore` per `USE_MEMORY_STORE`.
        redis_client: Client for the denylist. Defaults to `DENYLIST_URL`.
    """
    settings = settings or load_settings()
    configure_logging(settings)

    keystore = KeyStore.from_settings(settings)
    if store is None:
        store = MemoryStore() if settings.use_memory_store else MongoStore()
    if redis_client is None:
        redis_client = redis.asyncio.from_url(settings.denylist_url, decode_responses=True)

    codec = TokenCodec(keystore)
    denylist = Denylist(redis_client, timeout=settings.denylist_timeout_ms / 1000)
    directory = UserDirectory(store, timeout=settings.directory_timeout_ms / 1000)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds, max_workers=settings.bcrypt_max_workers)
    gate = PolicyGate()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logfire.info("Starting Artwork Gallery application...")

        client = None
        if isinstance(store, MongoStore):
            client = AsyncIOMotorClient(settings.database_connection_string)  # * Connect to MongoDB
            await init_beanie(
                database=client[settings.database_name],
                document_models=MongoStore.document_models,
            )
            logfire.info("Database initialized successfully")
        else:
            logfire.info("Using in-memory store")

        if await denylist.ping():
            logfire.info("Denylist connection established")
        else:
            logfire.warning("Denylist unreachable at startup, revocation checks will fail open")

        yield

        logfire.info("Shutting down Artwork Gallery application...")
        if client is not None:
            client.close()
        await denylist.close()
        logfire.info("Application shutdown complete")

    app = FastAPI(
        title="Artwork Gallery API",
        description="Marketplace for original artworks: artists publish, customers browse, wishlist and buy, administrators moderate.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.codec = codec
    app.state.denylist = denylist
    app.state.directory = directory
    app.state.policy_gate = gate
    app.state.auth_service = AuthService(store, codec, denylist, hasher)

    register_exception_handlers(app)

    if settings.logfire_write_token:
        instrument_libraries(app)

    # Starlette runs the last added middleware first
    app.add_middleware(AuthorizationMiddleware, gate=gate)
    app.add_middleware(AuthMiddleware, codec=codec, denylist=denylist, directory=directory)
    app.add_middleware(RateLimitMiddleware, rules=build_rate_limit_rules(settings))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization", "X-Rate-Limit-Remaining", "X-Rate-Limit-Reset", "Retry-After"],
    )

    @app.get("/", tags=["Health"])
    async def root():
        return {"name": "Artwork Gallery API", "status": "running"}

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    for module in (auth, users, artworks, artwork_query, artists, reviews, orders, cart, wishlist, dashboard, admin, debug):
        app.include_router(module.router)

    return app


app = create_app()
