# novanector/services/account_service.py
import logging
import math
from typing import Optional, Tuple

from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from novanector.core.error_messages import ErrorResponses
from novanector.models import user as user_model
from novanector.utils.auth_utils import create_access_token, user_claims
from novanector.utils.hash_utils import hash_password, verify_password
from novanector.utils.upload_utils import PendingUpload, ProfilePictureStore, profile_picture_store

logger = logging.getLogger(__name__)


def duplicate_field(exc: DuplicateKeyError) -> str:
    """Name of the unique field a DuplicateKeyError collided on."""
    details = exc.details or {}
    for key in ("keyPattern", "keyValue"):
        if details.get(key):
            return next(iter(details[key]))
    message = str(exc)
    for field in ("email", "username"):
        if field in message:
            return field
    return "User"


class AccountService:
    """Account operations over the users collection.

    Every method either returns the public view of the affected record(s) or
    raises an ``APIError`` from ``ErrorResponses``.
    """

    def __init__(self, collection, uploads: ProfilePictureStore = None):
        self.collection = collection
        self.uploads = uploads or profile_picture_store

    async def _store_picture(
        self, picture: Optional[PendingUpload], base_url: Optional[str]
    ) -> Optional[str]:
        """Store ``picture`` under ``base_url``, which must be the absolute server root."""
        if picture is None:
            return None
        return await run_in_threadpool(self.uploads.save, picture, base_url)

    async def _discard_picture(self, url: Optional[str]):
        if url:
            await run_in_threadpool(self.uploads.delete, url)

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
        picture: Optional[PendingUpload] = None,
        base_url: Optional[str] = None,
    ) -> dict:
        if not username or not email or not password:
            raise ErrorResponses.MISSING_REGISTRATION_FIELDS
        if len(password) < user_model.PASSWORD_MIN_LENGTH:
            raise ErrorResponses.PASSWORD_TOO_SHORT
        if len(password.encode("utf-8")) > user_model.PASSWORD_MAX_BYTES:
            raise ErrorResponses.PASSWORD_TOO_LONG

        username = user_model.normalize_username(username)
        email = user_model.normalize_email(email)
        if not user_model.is_valid_email(email):
            raise ErrorResponses.INVALID_EMAIL

        role = role or user_model.DEFAULT_ROLE
        errors = user_model.validate_user_fields({"username": username, "email": email, "role": role})
        if errors:
            raise ErrorResponses.validation_error(errors)

        existing = await user_model.find_user_by_email_or_username(self.collection, email, username)
        if existing:
            if existing["email"] == email:
                raise ErrorResponses.USER_EXISTS
            raise ErrorResponses.USERNAME_TAKEN

        password_hash = await run_in_threadpool(hash_password, password)
        picture_url = await self._store_picture(picture, base_url)
        document = user_model.build_user_document(username, email, password_hash, role, picture_url)

        try:
            await user_model.insert_user(self.collection, document)
        except DuplicateKeyError as exc:
            await self._discard_picture(picture_url)
            raise ErrorResponses.duplicate_key(duplicate_field(exc))
        except Exception:
            await self._discard_picture(picture_url)
            raise

        logger.info("Registered user %s (%s)", username, document["_id"])
        return user_model.serialize_user(document)

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[dict, str]:
        if not email or not password:
            raise ErrorResponses.MISSING_LOGIN_FIELDS

        user = await user_model.find_user_by_email(self.collection, user_model.normalize_email(email))
        if user is None:
            raise ErrorResponses.INVALID_CREDENTIALS
        if not await run_in_threadpool(verify_password, password, user["password"]):
            raise ErrorResponses.INVALID_CREDENTIALS

        token = create_access_token(user_claims(user))
        logger.info("Login: %s (%s)", user["username"], user["_id"])
        return user_model.serialize_user(user), token

    async def get_user(self, user_id: str) -> dict:
        user = await user_model.find_user_by_id(self.collection, user_id)
        if user is None:
            raise ErrorResponses.USER_NOT_FOUND
        return user_model.serialize_user(user)

    async def update_profile(
        self,
        user_id: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
        picture: Optional[PendingUpload] = None,
        base_url: Optional[str] = None,
    ) -> dict:
        user = await user_model.find_user_by_id(self.collection, user_id)
        if user is None:
            raise ErrorResponses.USER_NOT_FOUND

        changes = {}
        if username:
            username = user_model.normalize_username(username)
            if username != user["username"]:
                changes["username"] = username
        if email:
            email = user_model.normalize_email(email)
            if email != user["email"]:
                changes["email"] = email
        if role:
            changes["role"] = role

        errors = user_model.validate_user_fields(changes)
        if errors:
            raise ErrorResponses.validation_error(errors)

        if "email" in changes and await user_model.field_taken_by_other(
            self.collection, "email", changes["email"], user["_id"]
        ):
            raise ErrorResponses.EMAIL_TAKEN
        if "username" in changes and await user_model.field_taken_by_other(
            self.collection, "username", changes["username"], user["_id"]
        ):
            raise ErrorResponses.USERNAME_TAKEN

        picture_url = await self._store_picture(picture, base_url)
        if picture_url:
            changes["profilePicture"] = picture_url

        updated = await self._apply_changes(user, changes, picture_url)
        logger.info("Updated profile of %s: %s", user["_id"], ", ".join(sorted(changes)) or "no changes")
        return user_model.serialize_user(updated)

    async def update_picture(
        self,
        user_id: str,
        picture: Optional[PendingUpload],
        base_url: Optional[str] = None,
    ) -> dict:
        if picture is None:
            raise ErrorResponses.NO_FILE

        user = await user_model.find_user_by_id(self.collection, user_id)
        if user is None:
            raise ErrorResponses.USER_NOT_FOUND

        picture_url = await self._store_picture(picture, base_url)
        updated = await self._apply_changes(user, {"profilePicture": picture_url}, picture_url)
        logger.info("Updated profile picture of %s", user["_id"])
        return user_model.serialize_user(updated)

    async def _apply_changes(self, user: dict, changes: dict, picture_url: Optional[str]) -> dict:
        try:
            updated = await user_model.update_user(self.collection, user["_id"], changes)
        except DuplicateKeyError as exc:
            await self._discard_picture(picture_url)
            raise ErrorResponses.duplicate_key(duplicate_field(exc))
        except Exception:
            await self._discard_picture(picture_url)
            raise

        if updated is None:
            # removed between the read and the write
            await self._discard_picture(picture_url)
            raise ErrorResponses.USER_NOT_FOUND

        if picture_url:
            await self._discard_picture(user.get("profilePicture"))
        return updated

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[list, dict]:
        query = user_model.build_list_filter(role, search)
        users, total = await user_model.list_users(self.collection, query, (page - 1) * limit, limit)
        total_pages = math.ceil(total / limit)
        pagination = {
            "currentPage": page,
            "totalPages": total_pages,
            "totalUsers": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        }
        return [user_model.serialize_user(user) for user in users], pagination

    async def delete_user(self, user_id: str):
        user = await user_model.delete_user(self.collection, user_id)
        if user is None:
            raise ErrorResponses.USER_NOT_FOUND
        await self._discard_picture(user.get("profilePicture"))
        logger.info("Deleted user %s (%s)", user["username"], user["_id"])
