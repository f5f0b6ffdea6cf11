# bettracker/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bettracker.core.config import settings
from bettracker.core.errors import BetTrackerError, bettracker_error_handler
from bettracker.db.session import init_db
from bettracker.services.extraction import ExtractionClient

from bettracker.routers.bets import router as bets_router
from bettracker.routers.participants import router as participants_router
from bettracker.routers.settlements import router as settlements_router
import logging, sys

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS: the desktop client talks to us directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)
logging.getLogger("httpx").setLevel(logging.WARNING)

# settlements and reconcile outcomes stay visible
logging.getLogger("bettracker.services.settlement").setLevel(logging.INFO)
logging.getLogger("bettracker.services.reconcile").setLevel(logging.INFO)
logging.getLogger("bettracker.data_quality").setLevel(logging.WARNING)

app.add_exception_handler(BetTrackerError, bettracker_error_handler)

app.include_router(bets_router)
app.include_router(participants_router)
app.include_router(settlements_router)


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()
    # one extraction client per process
    app.state.extractor = ExtractionClient()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    extractor = getattr(app.state, "extractor", None)
    if extractor is not None:
        await extractor.aclose()


@app.get("/ping")
async def ping():
    return {"ok": True, "env": settings.APP_ENV}


@app.get("/healthz")
async def healthz():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bettracker.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
