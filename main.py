from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager, suppress
import asyncio
import logging
import sys

from database import Base, engine, SessionLocal, settings
from models import Raffle
from core.config import resolve_raffle_config
from core.raffle_manager import RaffleManager
from core.automation import automation_loop
from api import raffles, oracle

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO") -> None:
    """設定 root logger：stdout，含時間與模組名稱"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt='[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def ensure_default_raffle() -> int:
    """
    取得預設 Raffle；資料庫內沒有任何 Raffle 時依 Settings 部署一個

    返回：
        Raffle ID
    """
    db = SessionLocal()
    try:
        raffle = db.query(Raffle).order_by(Raffle.id).first()
        if raffle:
            return raffle.id

        config = resolve_raffle_config(settings)
        return RaffleManager.deploy(db, config).id
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立資料庫表、部署預設 Raffle、啟動 automation
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    app.state.default_raffle_id = ensure_default_raffle()

    automation_task = None
    if settings.automation_enabled:
        automation_task = asyncio.create_task(
            automation_loop(
                SessionLocal,
                app.state.default_raffle_id,
                settings.automation_poll_seconds
            )
        )

    yield

    # Shutdown: 停止 automation
    if automation_task:
        automation_task.cancel()
        with suppress(asyncio.CancelledError):
            await automation_task


app = FastAPI(
    title="Raffle API",
    description="Lottery state machine with automated upkeep and VRF-based winner selection",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(raffles.router)
app.include_router(oracle.router)


@app.get("/")
def root():
    return {"message": "Raffle API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
