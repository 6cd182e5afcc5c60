"""
main.py

CareToShare application entry point.

Responsibilities:
- create the FastAPI app and configure logging
- CORS middleware (the web client sends the refresh cookie cross-origin)
- map domain errors (caretoshare.core.errors) to JSON responses
- register the routers (auth, users, classes, files, search, stats)
- health / db-ping probes

Business rules live in the routers / services layers; this module only
assembles them.

Related:
- caretoshare.core.config  : settings
- caretoshare.core.errors  : AppError hierarchy
- caretoshare.routers.*    : feature routers
"""

import logging

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from caretoshare.core.config import settings
from caretoshare.core.deps import get_db
from caretoshare.core.errors import AppError
from caretoshare.routers import auth, users, classes, files, search, stats

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CareToShare API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(classes.router)
app.include_router(files.router)
app.include_router(search.router)
app.include_router(stats.router)


@app.get("/health")
def health():
    return {"status": "ok"}


"""
Database probe

- SELECT 1 against the configured database
- separates "process up, database down" from a dead process

"""
@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "value": value}
