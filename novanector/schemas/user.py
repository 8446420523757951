# novanector/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginSchema(BaseModel):
    # Presence is checked by the service so the client gets the usual envelope
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str
    email: str
    profilePicture: str
    role: str
    createdAt: datetime
    updatedAt: datetime


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalUsers: int
    hasNextPage: bool
    hasPrevPage: bool


class ResponseEnvelope(BaseModel):
    success: bool
    message: str


class UserResponse(ResponseEnvelope):
    user: UserOut


class LoginResponse(UserResponse):
    token: str


class UserListResponse(ResponseEnvelope):
    users: List[UserOut]
    pagination: Pagination
