# novanector/models/user.py
import re
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from novanector.core.config import settings
from novanector.schemas.user import UserOut

ROLES = ("admin", "instructor", "student")
DEFAULT_ROLE = "student"

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 9
# bcrypt only looks at the first 72 bytes
PASSWORD_MAX_BYTES = 72

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IMAGE_URL_REGEX = re.compile(r"^https?://.*\.(?:png|jpg|jpeg|gif|webp|bmp|tiff)$", re.IGNORECASE)


def utcnow() -> datetime:
    # BSON dates only keep milliseconds
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def as_utc(value):
    """Dates read through a non tz-aware client come back naive but are UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_object_id(user_id: str) -> Optional[ObjectId]:
    """Parse a path id; malformed ids map to None so callers report not-found."""
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


def normalize_username(username: str) -> str:
    return username.strip()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email))


def is_valid_image_url(url: str) -> bool:
    return bool(IMAGE_URL_REGEX.match(url))


def validate_user_fields(fields: dict) -> List[str]:
    """Check the record-level rules for whichever fields are present.

    Returns a list of human readable messages; an empty list means valid.
    """
    errors = []

    if "username" in fields:
        username = fields["username"]
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            errors.append(
                f"Username must be between {USERNAME_MIN_LENGTH} and "
                f"{USERNAME_MAX_LENGTH} characters."
            )

    if "email" in fields and not is_valid_email(fields["email"]):
        errors.append(f"{fields['email']} is not a valid email!")

    if "password" in fields and len(fields["password"]) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")

    if "profilePicture" in fields and not is_valid_image_url(fields["profilePicture"]):
        errors.append(f"{fields['profilePicture']} is not a valid image URL!")

    if "role" in fields and fields["role"] not in ROLES:
        errors.append(f"{fields['role']} is not a valid role. Allowed roles: {', '.join(ROLES)}.")

    return errors


def build_user_document(
    username: str,
    email: str,
    password_hash: str,
    role: Optional[str] = None,
    profile_picture: Optional[str] = None,
) -> dict:
    now = utcnow()
    return {
        "username": username,
        "email": email,
        "password": password_hash,
        "profilePicture": profile_picture or settings.DEFAULT_PROFILE_PICTURE,
        "role": role or DEFAULT_ROLE,
        "createdAt": now,
        "updatedAt": now,
    }


def serialize_user(user: dict) -> dict:
    """Public view of a stored record. The password hash never leaves here."""
    data = {**user, "_id": str(user["_id"])}
    for field in ("createdAt", "updatedAt"):
        if field in data:
            data[field] = as_utc(data[field])
    return UserOut.model_validate(data).model_dump(by_alias=True, mode="json")


# -----------------------------
# Collection helpers
# -----------------------------
async def find_user_by_id(collection, user_id: str):
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return await collection.find_one({"_id": oid})


async def find_user_by_email(collection, email: str):
    return await collection.find_one({"email": email})


async def find_user_by_email_or_username(collection, email: str, username: str):
    return await collection.find_one({"$or": [{"email": email}, {"username": username}]})


async def field_taken_by_other(collection, field: str, value: str, user_id: ObjectId) -> bool:
    other = await collection.find_one({field: value, "_id": {"$ne": user_id}}, {"_id": 1})
    return other is not None


async def insert_user(collection, document: dict) -> dict:
    result = await collection.insert_one(document)
    document["_id"] = result.inserted_id
    return document


async def update_user(collection, user_id: ObjectId, changes: dict):
    changes = {**changes, "updatedAt": utcnow()}
    return await collection.find_one_and_update(
        {"_id": user_id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )


async def delete_user(collection, user_id: str):
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return await collection.find_one_and_delete({"_id": oid})


def build_list_filter(role: Optional[str] = None, search: Optional[str] = None) -> dict:
    query = {}
    if role:
        query["role"] = role
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"username": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    return query


async def list_users(collection, query: dict, skip: int, limit: int):
    cursor = (
        collection.find(query, {"password": 0})
        .sort([("createdAt", -1), ("_id", -1)])
        .skip(skip)
        .limit(limit)
    )
    users = await cursor.to_list(length=limit)
    total = await collection.count_documents(query)
    return users, total
