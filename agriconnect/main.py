from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from agriconnect.api.router import api_router, socket_router
from agriconnect.core.config import settings
from agriconnect.core.errors import AppError
from agriconnect.core.logging import configure_logging, log_environment
from agriconnect.db.init_db import init_db
from agriconnect.db.session import engine
from agriconnect.services.assistant import AgriAssistant
from agriconnect.services.channels import ChannelHub
from agriconnect.services.community_chat import CommunityChatHandler
from agriconnect.services.message_store import MessageStore
from agriconnect.services.private_chat import PrivateChatHandler

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_: FastAPI):
    log_environment(settings)
    try:
        init_db()
    except SQLAlchemyError as exc:
        logger.error("Database initialisation failed: {}", exc)
        logger.warning("Continuing without the database, chat history and auth will not work")
    logger.info("{} started on port {} (sockets: /private-chat, /community-chat)", settings.PROJECT_NAME, settings.PORT)
    yield
    logger.info("Shutting down {}", settings.PROJECT_NAME)
    engine.dispose()

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, debug=settings.DEBUG, lifespan=lifespan)

allow_origins = settings.CORS_ORIGINS
allow_credentials = '*' not in allow_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=['*'],
    allow_headers=['*'],
)

store = MessageStore(engine)
app.state.store = store
app.state.private_chat = PrivateChatHandler(
    store,
    AgriAssistant.from_settings(settings),
    history_limit=settings.PRIVATE_HISTORY_LIMIT,
    reply_timeout=settings.ASSISTANT_REPLY_TIMEOUT,
)
app.state.community_chat = CommunityChatHandler(
    store,
    ChannelHub('community'),
    history_limit=settings.COMMUNITY_HISTORY_LIMIT,
)

app.include_router(api_router)
app.include_router(socket_router)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.debug("{} {}", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(AppError)
async def handle_app_error(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'message': exc.message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get('msg', 'Invalid request') if errors else 'Invalid request'
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'message': detail})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'message': exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={'message': 'Internal server error'})


@app.get('/')
def banner() -> dict:
    return {
        'message': '🌱 AgriConnect API Server is Running!',
        'version': settings.VERSION,
        'endpoints': {
            'auth': '/api/auth',
            'health': '/api/health',
            'test': '/api/test',
            'privateChat': '/private-chat',
            'communityChat': '/community-chat',
        },
    }
