from contextlib import asynccontextmanager
import logging
import warnings

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from fuelos import models  # noqa: F401  registers tables on Base.metadata
from fuelos.config import get_settings
from fuelos.database import Base, SessionLocal, engine
from fuelos.exceptions import AuthError, MissingFields, StoreUnavailable
from fuelos.routers import auth
from fuelos.seed import seed_demo_data, seed_superadmin
from fuelos.services.challenge_service import ChallengeService

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# passlib probes the bcrypt version on first use and warns on newer releases
warnings.filterwarnings("ignore", message=".*bcrypt.*")
logging.getLogger("passlib").setLevel(logging.ERROR)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_superadmin(db, settings)
        if settings.seed_demo_data:
            seed_demo_data(db)
        ChallengeService(db).purge_expired()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} auth API ({settings.environment})")
    init_db()
    yield
    logger.info(f"Shutting down {settings.app_name} auth API")


app = FastAPI(
    title="FuelOS Auth API",
    description="Owner, manager, operator and company-staff authentication with OTP and 2FA",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.error_code}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Field names only; submitted values (passwords, codes) are never echoed
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    error = MissingFields(details={"fields": fields})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Datastore error on {request.url.path}: {exc}")
    error = StoreUnavailable()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred", "details": {}}
    )


@app.get("/")
def root():
    return {
        "message": "FuelOS Auth API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
