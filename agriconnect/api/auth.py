from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from agriconnect.core.errors import UnexpectedError
from agriconnect.db.session import get_session
from agriconnect.models.user import User
from agriconnect.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from agriconnect.schemas.user import UserOut
from agriconnect.services.auth_service import get_current_user, login_user, register_user

router = APIRouter(prefix='/auth', tags=['auth'])


@router.post('/register', response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, session: Session = Depends(get_session)) -> RegisterResponse:
    try:
        user = register_user(session, payload.name, payload.email, payload.password)
    except SQLAlchemyError as exc:
        logger.exception("Register error")
        raise UnexpectedError('Server error during registration') from exc
    return RegisterResponse(message='User registered successfully', user=UserOut.model_validate(user))


@router.post('/login', response_model=LoginResponse)
def login(payload: LoginRequest, session: Session = Depends(get_session)) -> LoginResponse:
    try:
        token, user = login_user(session, payload.email, payload.password)
    except SQLAlchemyError as exc:
        logger.exception("Login error")
        raise UnexpectedError('Server error during login') from exc
    return LoginResponse(message='Login successful', token=token, user=UserOut.model_validate(user))


@router.get('/me', response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user)
