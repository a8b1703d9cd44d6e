from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from social.api import auth, posts, users
from social.config_secrets import CORS_ORIGINS
from social.core.db import close_db, init_db
from social.core.errors import register_error_handlers

# Create FastAPI application
app = FastAPI(
    title="MERN Social API",
    description="Users, follows, posts and a following-based newsfeed",
    version="0.1.0",
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register API routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)


@app.on_event("startup")
async def startup_event():
    """Initialize connections on startup"""
    await init_db()


@app.on_event("shutdown")
async def shutdown_event():
    """Close connections on shutdown"""
    await close_db()


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
