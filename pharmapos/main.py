from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from pharmapos.config import settings
from pharmapos.database import engine, Base
from pharmapos.events.broadcaster import Broadcaster
from pharmapos.events.router import router as events_router
from pharmapos.stock.products.router import router as product_router
from pharmapos.stock.category.router import router as category_router
from pharmapos.sales.router import router as sales_router
from pharmapos.maintenance.router import router as maintenance_router
from pharmapos.reports.router import router as reports_router

# register every table on Base.metadata
from pharmapos.stock.products import models as product_models  # noqa: F401
from pharmapos.stock.category import models as category_models  # noqa: F401
from pharmapos.sales import models as sales_models  # noqa: F401


# Database startup
@asynccontextmanager
async def lifespan(app: FastAPI):
    log_sink = logger.add(settings.LOG_FILE, rotation="500 MB", level=settings.LOG_LEVEL)
    logger.info("Application startup")

    Base.metadata.create_all(bind=engine)
    app.state.broadcaster = Broadcaster(queue_size=settings.SSE_QUEUE_SIZE)

    yield

    app.state.broadcaster.close()
    logger.info("Application shutdown")
    logger.remove(log_sink)


# Create app
app = FastAPI(
    title="PHARMACY POS",
    description="Point-of-sale and inventory API: products, categories, sales and live stock updates.",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    fields = ", ".join(e["field"] for e in errors if e["field"]) or "request body"
    logger.warning(f"Rejected {request.method} {request.url.path}: invalid {fields}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": f"Invalid value for: {fields}", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error", "message": str(exc)},
    )


# Routers (the update stream must come before /api/products/{product_id})
app.include_router(events_router, prefix="/api/products", tags=["Product Updates"])
app.include_router(product_router, prefix="/api/products", tags=["Stock - Products"])
app.include_router(category_router, prefix="/api/categories", tags=["Stock - Category"])
app.include_router(sales_router, prefix="/api/sales", tags=["Sales"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])
app.include_router(maintenance_router, prefix="/api", tags=["Maintenance"])


@app.get("/health")
def health_check():
    return {"status": "ok"}


def run():
    uvicorn.run("pharmapos.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
