import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from edutest import __version__, config
from edutest import models  # noqa: F401  registers the tables on Base.metadata
from edutest.database import Base, engine
from edutest.models.roles import Role
from edutest.models.user import User
from edutest.routers import admin as admin_router, auth as auth_router, candidate as candidate_router
from edutest.routers import sessions as sessions_router, tests as tests_router
from edutest.utils.auth import get_password_hash
from edutest.utils.errors import AppError
from edutest.utils.logging import configure_logging, set_request_id

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger("edutest")

app = FastAPI(title="EduTest", version=__version__)
Base.metadata.create_all(bind=engine)


def ensure_admin(db: Session) -> None:
    """Creates the bootstrap admin from ADMIN_EMAIL / ADMIN_PASSWORD if it does not exist yet."""
    if not config.ADMIN_EMAIL or not config.ADMIN_PASSWORD:
        return
    email = config.ADMIN_EMAIL.lower()
    if db.query(User).filter(User.email == email).first():
        return
    db.add(
        User(
            id=str(uuid4()),
            name=config.ADMIN_NAME,
            email=email,
            password_hash=get_password_hash(config.ADMIN_PASSWORD),
            role=Role.ADMIN,
        )
    )
    db.commit()
    logger.info("Bootstrap admin %s created", email)


with Session(engine) as db:
    ensure_admin(db)


@app.middleware("http")
async def request_context(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid4().hex
    set_request_id(rid)
    started = time.perf_counter()
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method, request.url.path, response.status_code, (time.perf_counter() - started) * 1000,
        )
        return response
    finally:
        set_request_id(None)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.code})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "error": "internal_error"})


app.include_router(auth_router.router)
app.include_router(tests_router.router)
app.include_router(sessions_router.router)
app.include_router(admin_router.router)
app.include_router(candidate_router.router)


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("edutest.main:app", host="127.0.0.1", port=8000, reload=True)
