import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend import database
from backend.core import config
from backend.core.logging_config import configure_logging
from backend.database import get_db
from backend.models import archive, attendance, lecture, user
from backend.routes import admin_routes, auth_routes, student_routes, teacher_routes

app = FastAPI(title=config.SERVICE_NAME, version=config.SERVICE_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
    allow_headers=['Content-Type', 'Authorization'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    configure_logging()
    config.validate_runtime_config()
    if not config.FRONTEND_URL:
        logger.warning('FRONTEND_URL is not set; QR links will be relative.')

    engine = database.init_engine()
    try:
        database.Base.metadata.create_all(bind=engine)
        database.ensure_attendance_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.on_event('shutdown')
def release_database() -> None:
    database.dispose_engine()


def _describe_validation_errors(errors) -> str:
    missing = [str(error['loc'][-1]) for error in errors if error['type'] == 'missing']
    if missing:
        return f"Missing required fields: {', '.join(missing)}."
    first = errors[0]
    return str(first['msg']).removeprefix('Value error, ')


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and detail == 'Not Found':
        detail = 'Route not found'
    return JSONResponse(status_code=exc.status_code, content={'error': detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'error': _describe_validation_errors(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    content = {'error': 'Internal server error'}
    if config.is_development():
        content['message'] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get('/')
def root():
    return {
        'status': 'online',
        'service': config.SERVICE_NAME,
        'version': config.SERVICE_VERSION,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


@app.get('/health')
def health(db: Session = Depends(get_db)):
    try:
        users = database.ping(db)
    except SQLAlchemyError:
        logger.exception('Health check failed')
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={'status': 'unhealthy', 'database': 'disconnected'},
        )
    return {'status': 'healthy', 'database': 'connected', 'users': users}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(teacher_routes.router, prefix='/teacher')
app.include_router(student_routes.router, prefix='/student')
app.include_router(admin_routes.router, prefix='/admin')
