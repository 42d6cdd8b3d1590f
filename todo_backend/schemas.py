from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict


# Request fields are optional so that presence checks produce the
# documented error messages instead of generic validation output.

class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: Optional[str] = None


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserOut


class VerifyResponse(BaseModel):
    valid: bool = True
    user: UserOut


class TodoCreate(BaseModel):
    text: Optional[str] = None


class TodoUpdate(BaseModel):
    text: Optional[str] = None
    completed: Optional[bool] = None


class TodoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    text: str
    completed: bool
    position: int
    created_at: datetime
    updated_at: datetime


class TodoUpdated(BaseModel):
    message: str
    todo: TodoRead


class Message(BaseModel):
    message: str
