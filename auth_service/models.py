from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class UserInfo(BaseModel):
    username: str
    id: str
    role: Literal["admin", "user"] = "user"


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    user: UserInfo
    token: str = Field(..., description="JWT to pass as `token` in the hub's client-login message.")
    token_type: str = "bearer"


class LoginFailure(BaseModel):
    success: bool = False
    message: str = "Invalid credentials"
