import os
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import database
from config import ADMIN_EMAIL, ADMIN_NAME, ADMIN_PASSWORD, LOG_LEVEL
from errors import AppError, InternalError
from schemas import (
    Booking as BookingSchema,
    Coach as CoachSchema,
    PremiumTeam as PremiumTeamSchema,
    Program as ProgramSchema,
    User as UserSchema,
)
import admin
import bookings
import premium_teams
import slots
import users

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("gambo")

# ----------------------------------------------------------------------------
# App
# ----------------------------------------------------------------------------
app = FastAPI(title="Gambo Stadium API", description="Ground booking and premium training backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(bookings.router)
app.include_router(premium_teams.router)
app.include_router(slots.router)
app.include_router(admin.router)


# ----------------------------------------------------------------------------
# Error handling
# ----------------------------------------------------------------------------
def error_response(exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "error": "ValidationError", "errors": errors},
    )


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return error_response(InternalError())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected failure on %s %s", request.method, request.url.path)
    return error_response(InternalError())


# ----------------------------------------------------------------------------
# Startup
# ----------------------------------------------------------------------------
@app.on_event("startup")
def bootstrap():
    if database.db is None:
        logger.warning("DATABASE_URL/DATABASE_NAME not set, running without a database")
        return
    database.db["user"].create_index("email", unique=True)
    if ADMIN_EMAIL and ADMIN_PASSWORD and not users.get_user_by_email(database.db, ADMIN_EMAIL):
        users.signup(database.db, ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")
        logger.info("Seeded administrator %s", ADMIN_EMAIL)


# ----------------------------------------------------------------------------
# Root & Health
# ----------------------------------------------------------------------------
@app.get("/")
def read_root():
    return {"message": "Gambo Stadium API is running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    if database.db is None:
        return response
    response["database"] = "✅ Available"
    response["connection_status"] = "Connected"
    try:
        response["collections"] = database.db.list_collection_names()
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response


# ----------------------------------------------------------------------------
# Schema exposure for DB viewer
# ----------------------------------------------------------------------------
@app.get("/schema")
def get_schema():
    return {
        "user": UserSchema.model_json_schema(),
        "booking": BookingSchema.model_json_schema(),
        "premium_team": PremiumTeamSchema.model_json_schema(),
        "coach": CoachSchema.model_json_schema(),
        "program": ProgramSchema.model_json_schema(),
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
