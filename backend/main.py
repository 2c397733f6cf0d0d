import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core import config
from backend.database import Base, engine, ensure_availability_schema, ensure_booking_schema
from backend.models import availability, booking, braider, rate_limit, user  # noqa: F401
from backend.routes import availability_routes, booking_routes, braider_routes, user_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

app = FastAPI(title='Braider Booking API', debug=config.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = 'Dados inválidos'
VALUE_ERROR_PREFIX = 'Value error, '


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'error': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = INVALID_REQUEST_MESSAGE
    if errors and errors[0].get('type') in {'value_error', 'assertion_error'}:
        message = str(errors[0].get('msg', '')).removeprefix(VALUE_ERROR_PREFIX) or INVALID_REQUEST_MESSAGE
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'success': False, 'error': message},
    )


@app.get('/')
def root():
    return {'status': 'Braider Booking API Running'}


app.include_router(booking_routes.router)
app.include_router(user_routes.router, prefix='/user')
app.include_router(availability_routes.router, prefix='/braiders/availability')
app.include_router(braider_routes.router, prefix='/braiders/bookings')


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'success': False, 'error': 'Erro inesperado no servidor'},
    )
