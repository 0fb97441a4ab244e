from typing import Optional
from pydantic import BaseModel, EmailStr
from agriconnect.schemas.user import UserOut


# Fields are optional so that missing values surface as the service's own
# 400 message instead of FastAPI's 422 body.
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class RegisterResponse(BaseModel):
    message: str
    user: UserOut


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserOut
