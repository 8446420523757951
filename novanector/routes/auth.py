# novanector/routes/auth.py
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from novanector.core.error_messages import ErrorResponses
from novanector.database import get_user_collection
from novanector.schemas.user import LoginResponse, LoginSchema, ResponseEnvelope, UserListResponse, UserResponse
from novanector.services.account_service import AccountService
from novanector.utils.upload_utils import PendingUpload, read_profile_picture

auth_router = APIRouter(tags=["Auth"])


@dataclass
class AccountForm:
    fields: Dict[str, str] = field(default_factory=dict)
    picture: Optional[PendingUpload] = None


async def account_form(request: Request):
    """Parse a multipart, urlencoded or JSON body into text fields plus an optional picture."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        try:
            picture = await read_profile_picture(form)
            fields = {key: value for key, value in form.multi_items() if isinstance(value, str)}
            yield AccountForm(fields=fields, picture=picture)
        finally:
            await form.close()
        return

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ErrorResponses.validation_error(["Request body must be valid JSON."])
        if not isinstance(body, dict):
            raise ErrorResponses.validation_error(["Request body must be a JSON object."])
        yield AccountForm(fields={key: value for key, value in body.items() if isinstance(value, str)})
        return

    yield AccountForm()


def get_account_service(collection=Depends(get_user_collection)) -> AccountService:
    return AccountService(collection)


def request_base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@auth_router.get("", response_model=ResponseEnvelope)
async def auth_status():
    return {"success": True, "message": "Auth API is working!"}


@auth_router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(
    request: Request,
    form: AccountForm = Depends(account_form),
    service: AccountService = Depends(get_account_service),
):
    user = await service.register(
        username=form.fields.get("username"),
        email=form.fields.get("email"),
        password=form.fields.get("password"),
        role=form.fields.get("role"),
        picture=form.picture,
        base_url=request_base_url(request),
    )
    return {"success": True, "message": "User created successfully.", "user": user}


@auth_router.post("/login", response_model=LoginResponse)
async def login(data: LoginSchema, service: AccountService = Depends(get_account_service)):
    user, token = await service.login(data.email, data.password)
    return {"success": True, "message": "Login successful.", "user": user, "token": token}


@auth_router.get("/users", response_model=UserListResponse)
async def get_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    service: AccountService = Depends(get_account_service),
):
    users, pagination = await service.list_users(page=page, limit=limit, role=role, search=search)
    return {
        "success": True,
        "message": "Users retrieved successfully.",
        "users": users,
        "pagination": pagination,
    }


@auth_router.get("/users/{user_id}", response_model=UserResponse)
async def get_single_user(user_id: str, service: AccountService = Depends(get_account_service)):
    user = await service.get_user(user_id)
    return {"success": True, "message": "User retrieved successfully.", "user": user}


@auth_router.put("/users/{user_id}", response_model=UserResponse)
async def update_user_profile(
    user_id: str,
    request: Request,
    form: AccountForm = Depends(account_form),
    service: AccountService = Depends(get_account_service),
):
    user = await service.update_profile(
        user_id,
        username=form.fields.get("username"),
        email=form.fields.get("email"),
        role=form.fields.get("role"),
        picture=form.picture,
        base_url=request_base_url(request),
    )
    return {"success": True, "message": "Profile updated successfully.", "user": user}


@auth_router.put("/users/{user_id}/picture", response_model=UserResponse)
async def update_profile_picture(
    user_id: str,
    request: Request,
    form: AccountForm = Depends(account_form),
    service: AccountService = Depends(get_account_service),
):
    user = await service.update_picture(user_id, form.picture, base_url=request_base_url(request))
    return {"success": True, "message": "Profile picture updated successfully.", "user": user}


@auth_router.delete("/users/{user_id}", response_model=ResponseEnvelope)
async def delete_user(user_id: str, service: AccountService = Depends(get_account_service)):
    await service.delete_user(user_id)
    return {"success": True, "message": "User deleted successfully."}
