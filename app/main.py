from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import index
from app.api.v1 import components
from app.api.v1 import styles
from app.api.v1 import links
from app.api.v1 import component_tests
from app.api.v1 import dashboard
from app.api.v1 import suppliers
from app.api.v1 import factories
from app.api.v1 import technologists
from app.api.v1 import inspections

from app.core.config import settings
from app.core.exceptions import ComplianceError
from app.core.logging import setup_logging
from app.core.scheduler import ReconcileScheduler
from app.db.core import create_db_and_tables

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()

    scheduler = None
    if settings.reconcile_enabled:
        scheduler = ReconcileScheduler()
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    if scheduler:
        scheduler.shutdown()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Middlewares
origins = []

if settings.allowed_hosts:
    origins = settings.allowed_hosts.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ComplianceError)
async def compliance_error_handler(request: Request, exc: ComplianceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routes
app.include_router(index.router, prefix="/api/v1", tags=["Health"])
app.include_router(
    components.router, prefix="/api/v1/components", tags=["Components"])
app.include_router(styles.router, prefix="/api/v1/styles", tags=["Styles"])
app.include_router(links.router, prefix="/api/v1/links", tags=["Links"])
app.include_router(component_tests.router,
                   prefix="/api/v1/tests", tags=["Tests"])
app.include_router(
    inspections.router, prefix="/api/v1/inspections", tags=["Inspections"])
app.include_router(
    dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
app.include_router(
    suppliers.router, prefix="/api/v1/suppliers", tags=["Suppliers"])
app.include_router(
    factories.router, prefix="/api/v1/factories", tags=["Factories"])
app.include_router(technologists.router,
                   prefix="/api/v1/technologists", tags=["Technologists"])

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=None,
    )
