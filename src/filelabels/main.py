"""FastAPI application for filelabels"""

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filelabels import __version__
from filelabels.api.labels import router as labels_router
from filelabels.api.admin import router as admin_router

# Create FastAPI app
app = FastAPI(
    title="filelabels API",
    description="Per-user key-value labels for files",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Add CORS middleware for development (when the sidebar UI runs on a different port)
if os.getenv("FILELABELS_ENV") == "development":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000"
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API routers
app.include_router(labels_router, prefix="/api/v1/labels", tags=["labels"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "filelabels-api"}


@app.on_event("startup")
async def startup_event():
    """Initialize database, run migrations and hook up cleanup listeners"""
    from filelabels.storage.database import initialize_database
    from filelabels.storage.cleanup import register_cleanup_listeners
    from filelabels.storage.events import event_dispatcher

    await initialize_database()
    register_cleanup_listeners(event_dispatcher)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8080)
