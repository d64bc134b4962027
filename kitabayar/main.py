import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

import kitabayar.models.all  # noqa: F401  (registers every mapper)
from kitabayar.core.config import settings
from kitabayar.core.database import SessionLocal
from kitabayar.core.errors import register_exception_handlers
from kitabayar.api.routes.auth import router as auth_router
from kitabayar.api.routes.users import router as users_router
from kitabayar.api.routes.residents import router as residents_router
from kitabayar.api.routes.bill_categories import router as bill_categories_router
from kitabayar.api.routes.bill_types import router as bill_types_router
from kitabayar.api.routes.bill_periods import router as bill_periods_router
from kitabayar.api.routes.bills import router as bills_router
from kitabayar.api.routes.payments import router as payments_router
from kitabayar.api.routes.dashboard import router as dashboard_router
from kitabayar.api.routes.me import router as me_router
from kitabayar.api.routes.audit_logs import router as audit_logs_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# 1) Create the app FIRST
app = FastAPI(title="KitaBayar")

# 2) Add CORS Middleware BEFORE routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3) 400 for validation, 409 for conflicts, 500 for other database failures
register_exception_handlers(app)

# 4) Include routers AFTER app is created
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(residents_router)
app.include_router(bill_categories_router)
app.include_router(bill_types_router)
app.include_router(bill_periods_router)
app.include_router(bills_router)
app.include_router(payments_router)
app.include_router(dashboard_router)
app.include_router(me_router)
app.include_router(audit_logs_router)

# 5) Health check endpoints
@app.get("/health")
def health():
    return {"ok": True, "service": "kitabayar"}

@app.get("/db-health")
def db_health():
    db = SessionLocal()
    try:
        db.execute(text("select 1"))
        return {"ok": True, "db": "connected"}
    finally:
        db.close()
