import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import Base, SessionLocal, engine
from dependencies import seed_super_admin
from errors import register_exception_handlers
from routers import auth, events, laravel, news, system, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting up ({settings.ENVIRONMENT})")
    db = SessionLocal()
    try:
        seed_super_admin(db)
    finally:
        db.close()
    yield
    # Shutdown
    logger.info("Shutting down")

app = FastAPI(
    title="NETI Site API",
    description="Public events and news with an authenticated admin back-office",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(auth.roles_router, prefix="/api/roles", tags=["authentication"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(news.router, prefix="/api/news", tags=["news"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(laravel.router, prefix="/api/laravel", tags=["proxy"])
app.include_router(system.router, prefix="/api", tags=["system"])

@app.get("/")
async def root():
    return {"message": "NETI Site API", "version": "1.0.0"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
