import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.errors import register_error_handlers
from .api.routes import courts, reservations, payments, misc
from .db.session import Base, engine
from .config import get_settings
from .workers.scheduler import get_scheduler


settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Courtbook Reservations API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(courts.router, prefix="/api/v1")
app.include_router(reservations.router, prefix="/api/v1")
app.include_router(payments.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    if settings.scheduler_enabled:
        scheduler = get_scheduler()
        scheduler.start()
        app.state.scheduler = scheduler


@app.on_event("shutdown")
async def shutdown_event() -> None:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)
