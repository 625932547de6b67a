import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.bookings import router as bookings_router
from api.deps import memory_repository
from api.driver import router as driver_router
from api.routes import router as routes_router
from config import config
from db import database
from db.repository import SqlAlchemyRepository
from db.seed import seed_demo_data

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _seed() -> None:
    if database.SessionLocal is None:
        seed_demo_data(memory_repository)
        return
    with database.session_scope() as db:
        seed_demo_data(SqlAlchemyRepository(db))


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.is_database_available():
        database.create_tables()
    else:
        logger.warning("Database unavailable, bookings are kept in memory only")

    if config.SEED_DEMO_DATA:
        try:
            _seed()
        except Exception as e:
            logger.error(f"Demo data seed failed: {e}")
    yield


app = FastAPI(title="Shuttlebook API", lifespan=lifespan)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_router)
app.include_router(bookings_router)
app.include_router(driver_router)


@app.get("/")
def read_root():
    return {"message": "Welcome to Shuttlebook API"}


@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "database": database.is_database_available(),
        "config": config.get_config_dict(),
    }
