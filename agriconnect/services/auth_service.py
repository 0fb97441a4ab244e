from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from agriconnect.core.config import settings
from agriconnect.core.errors import AuthError, ConflictError, ValidationError
from agriconnect.db.session import get_session
from agriconnect.models.user import User

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=['bcrypt'], deprecated='auto')
security = HTTPBearer()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


def normalize_email(email: str) -> str:
    return email.lower().strip()


def create_access_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        'sub': user_id,
        'type': 'access',
        'iat': now,
        'exp': now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id carried by a valid access token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token') from exc
    if payload.get('type') != 'access' or not payload.get('sub'):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid token type')
    return payload['sub']


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email))).first()


def register_user(
    session: Session,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> User:
    if not name or not name.strip() or not email or not password:
        raise ValidationError('All fields are required: name, email, password')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if get_user_by_email(session, email):
        raise ConflictError('User already exists with this email')

    user = User(name=name.strip(), email=normalize_email(email), hashed_password=hash_password(password))
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        # lost a race with a concurrent registration of the same email
        session.rollback()
        raise ConflictError('User already exists with this email') from exc
    session.refresh(user)
    logger.info("New user registered: {}", user.email)
    return user


def login_user(session: Session, email: Optional[str], password: Optional[str]) -> tuple[str, User]:
    if not email or not password:
        raise ValidationError('Email and password are required')
    user = get_user_by_email(session, email)
    if not user:
        logger.info("Login failed: unknown email {}", email)
        raise AuthError('Invalid email or password')
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed: wrong password for {}", email)
        raise AuthError('Invalid email or password')
    logger.info("Login successful for {}", user.email)
    return create_access_token(user.id), user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: Session = Depends(get_session),
) -> User:
    user_id = decode_access_token(credentials.credentials)
    user = session.exec(select(User).where(User.id == user_id)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='User not found')
    return user
