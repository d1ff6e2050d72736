from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from freightboard.config import settings
from freightboard.middleware.exceptions import register_exception_handlers
from freightboard.routers import admin, chat, health, loads, offers

app = FastAPI(
    title="FreightBoard",
    description="Freight load marketplace: load lifecycle and offer negotiation",
    version="0.1.0",
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(loads.router, prefix="/api/loads", tags=["loads"])
app.include_router(chat.router, prefix="/api/loads", tags=["chat"])
app.include_router(offers.router, prefix="/api/offers", tags=["offers"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
