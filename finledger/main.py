from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .core.errors import LedgerError
from .core.logging import configure_logging
from .database import init_db
from .routers import accounts as accounts_router
from .routers import allocations as allocations_router
from .routers import auth as auth_router
from .routers import borrowings as borrowings_router
from .routers import categories as categories_router
from .routers import transactions as transactions_router


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Finledger - Personal Finance Backend", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def on_startup():
        init_db()

    @app.exception_handler(LedgerError)
    def ledger_error_handler(request: Request, exc: LedgerError):
        logger.info("{} {} rejected: {} ({})", request.method, request.url.path, exc.message, exc.kind)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.kind},
        )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router.router)
    app.include_router(accounts_router.router)
    app.include_router(categories_router.router)
    app.include_router(transactions_router.router)
    app.include_router(allocations_router.router)
    app.include_router(borrowings_router.router)

    return app


app = create_app()
