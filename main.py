from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from config import Settings, get_settings
from core.engine import GameEngine
from core.room_manager import RoomManager
from api import rooms, websocket

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 房間全部在記憶體內，不需要初始化任何儲存
    logger.info(f"Game room server ready (settlement_mode={app.state.settings.settlement_mode})")
    yield
    # Shutdown: 房間狀態不保留
    logger.info(f"Shutting down with {len(app.state.engine.registry)} live room(s)")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Game Room API",
        description="Shared two-seat game rooms: wheel, tai-xiu, roulette and blackjack",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.engine = GameEngine(RoomManager(settings), settings)
    app.state.hub = websocket.ConnectionHub()

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(rooms.router)
    app.include_router(websocket.router)

    @app.get("/")
    def root():
        return {"message": "Game Room API", "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy", "rooms": len(app.state.engine.registry)}

    return app


app = create_app()


def run():
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
