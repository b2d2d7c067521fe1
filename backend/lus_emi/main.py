from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from lus_emi.core.config import settings
from lus_emi.core.errors import EMIError
from lus_emi.core.logging import get_logger, setup_logging
from lus_emi.database_init import create_tables, ensure_database
from lus_emi.routes import (
    admin,
    aml,
    auth,
    cashier,
    compliance,
    documents,
    notifications,
    organizations,
    qr_codes,
    settlements,
    transactions,
    wallets,
    ws,
)

setup_logging()
logger = get_logger(__name__)

# --- ensure database exists ---
ensure_database()

app = FastAPI(title="LUS EMI API")

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Create tables ---
create_tables()


# --- Errors: every failure is rendered as {"message": ...} ---
@app.exception_handler(EMIError)
async def emi_error_handler(request: Request, exc: EMIError):
    logger.info(
        "request_failed",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, **exc.extra})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(errors: list) -> list:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg")}
        for error in errors
    ]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={"message": message, "errors": jsonable_errors(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# --- Routes ---
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(organizations.router)
app.include_router(wallets.router)
app.include_router(cashier.router)
app.include_router(transactions.router)
app.include_router(qr_codes.router)
app.include_router(settlements.router)
app.include_router(documents.router)
app.include_router(aml.router)
app.include_router(compliance.router)
app.include_router(notifications.router)
app.include_router(ws.router)


# --- Root route ---
@app.get("/")
def root():
    return {"message": "LUS EMI API is running"}
