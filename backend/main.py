from contextlib import asynccontextmanager
from pathlib import Path
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).parent / ".env", override=True)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

from hrsync.database import init_db
from hrsync.routers.anniversaries import router as anniversaries_router
from hrsync.routers.employees import router as employees_router
from hrsync.routers.imports import router as imports_router
from hrsync.routers.lifecycle import router as lifecycle_router
from hrsync.routers.schedule import router as schedule_router
from hrsync.routers.settings import router as settings_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(title="HR Sync API", lifespan=lifespan)

app.include_router(imports_router)
app.include_router(employees_router)
app.include_router(anniversaries_router)
app.include_router(lifecycle_router)
app.include_router(settings_router)
app.include_router(schedule_router)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"ok": True}
