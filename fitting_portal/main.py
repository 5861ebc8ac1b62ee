import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from fitting_portal.api.endpoints import admin, customers, health, photos, shopify, size_recommendations, upload
from fitting_portal.db import SessionLocal, engine
from fitting_portal.models import Base
from fitting_portal.services.rate_limiter import RateLimiter
from fitting_portal.services.size_recommendation import seed_default_size_charts
from fitting_portal.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fitting Portal API")

# 업로드 레이트리밋 상태는 앱 인스턴스 단위로 보관
app.state.upload_rate_limiter = RateLimiter(
    max_requests=settings.upload_rate_limit,
    window_seconds=settings.upload_rate_window_seconds,
    sweep_interval=settings.rate_limit_sweep_seconds,
)

app.include_router(health.router, tags=["Health"])
app.include_router(upload.router, prefix="/api/upload-photo", tags=["Upload"])
app.include_router(photos.router, prefix="/api/photos", tags=["Photos"])
app.include_router(customers.router, prefix="/api/customer", tags=["Customers"])
app.include_router(size_recommendations.router, prefix="/api/size-recommendations", tags=["Size Recommendations"])
app.include_router(shopify.router, prefix="/api/shopify", tags=["Shopify"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg") or message)
        # pydantic 이 ValueError 메시지 앞에 붙이는 접두어 제거
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error. Please try again."},
    )


@app.on_event("startup")
def on_startup() -> None:
    # 운영 환경은 Alembic 마이그레이션 사용, 로컬 개발 시에만 자동 생성
    if settings.db_auto_create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

    if settings.seed_default_size_charts:
        try:
            with SessionLocal() as session:
                with session.begin():
                    created = seed_default_size_charts(session)
            if created:
                logger.info(f"Seeded {created} default size charts")
        except SQLAlchemyError as e:
            logger.warning(f"Skipping size chart seeding: {e}")
