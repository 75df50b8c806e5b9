import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from vendorbid.api import admin, analytics, auth, bids, profiles, requirements
from vendorbid.core.config import settings
from vendorbid.core.errors import register_exception_handlers
from vendorbid.core.logging import get_logger, setup_logging
from vendorbid.db.session import init_db

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME}")
    init_db()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(requirements.router)
app.include_router(bids.router)
app.include_router(profiles.vendors_router)
app.include_router(profiles.suppliers_router)
app.include_router(analytics.router)
app.include_router(admin.router)


@app.get("/api/health")
async def health():
    return {"status": "OK", "message": "Vendor Bidding Platform API is running"}


os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
