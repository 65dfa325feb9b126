# auth_api/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

# --- Adicionar imports do slowapi ---
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
# --- Fim imports slowapi ---
from app.core.config import settings
from app.core.exceptions import AuthError, InfrastructureError
from app.db.session import dispose_engine, get_session_local
from app.api.endpoints import auth
from app.services.session_sweeper import SessionSweeper

# Importar modelos para Alembic/Base.metadata
from app.db.base import Base # noqa
from app.models import user, refresh_session # noqa


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

app = FastAPI(
    title="Auth API",
    description="Autenticação com access token curto e refresh token rotativo por fingerprint",
    version="1.0.0",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Erros de domínio -> HTTP ---
@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    logger.error(f"Falha de infraestrutura em {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
# --- Fim erros ---


# Refresh e logout ficam sob este prefixo; o cookie do refresh token usa o mesmo path
app.include_router(
    auth.router,
    prefix=settings.auth_prefix,
    tags=["Authentication"],
)


sweeper = SessionSweeper(get_session_local, interval_seconds=settings.SESSION_SWEEP_INTERVAL_MINUTES * 60)

@app.on_event("startup")
async def startup_event():
    if settings.SESSION_SWEEP_INTERVAL_MINUTES > 0:
        sweeper.start()

@app.on_event("shutdown")
async def shutdown_event():
    await sweeper.stop()
    logger.info("Shutting down: Disposing database engine...")
    await dispose_engine()
    logger.info("Database engine disposed.")

@app.get("/")
def read_root():
    return {"message": "Auth API is running!"}
