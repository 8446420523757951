# novanector/core/error_messages.py
from typing import List, Optional

from fastapi import HTTPException, status


class APIError(HTTPException):
    """HTTPException rendered as the ``{success, message, ...}`` envelope.

    ``error`` is an optional machine readable code and ``errors`` an optional
    list of validation messages; both are copied into the response body.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.error = error
        self.errors = errors

    def to_body(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.error:
            body["error"] = self.error
        if self.errors:
            body["errors"] = self.errors
        return body


class ErrorResponses:
    # Validation
    MISSING_REGISTRATION_FIELDS = APIError(
        status.HTTP_400_BAD_REQUEST, "Username, email, and password are required."
    )
    MISSING_LOGIN_FIELDS = APIError(
        status.HTTP_400_BAD_REQUEST, "Email and password are required."
    )
    PASSWORD_TOO_SHORT = APIError(
        status.HTTP_400_BAD_REQUEST, "Password must be at least 9 characters long."
    )
    INVALID_EMAIL = APIError(
        status.HTTP_400_BAD_REQUEST, "Please provide a valid email address."
    )
    PASSWORD_TOO_LONG = APIError(
        status.HTTP_400_BAD_REQUEST, "Password must be at most 72 bytes long."
    )

    # Conflicts
    USER_EXISTS = APIError(
        status.HTTP_400_BAD_REQUEST, "User with this email already exists.", error="EMAIL_EXISTS"
    )
    USERNAME_TAKEN = APIError(
        status.HTTP_400_BAD_REQUEST, "Username is already taken.", error="USERNAME_EXISTS"
    )
    EMAIL_TAKEN = APIError(
        status.HTTP_400_BAD_REQUEST, "Email is already taken.", error="EMAIL_EXISTS"
    )

    # Auth
    INVALID_CREDENTIALS = APIError(
        status.HTTP_401_UNAUTHORIZED, "Invalid email or password."
    )

    # Lookup
    USER_NOT_FOUND = APIError(status.HTTP_404_NOT_FOUND, "User not found.")

    # Uploads
    NO_FILE = APIError(status.HTTP_400_BAD_REQUEST, "No file uploaded.", error="NO_FILE")
    FILE_TOO_LARGE = APIError(
        status.HTTP_400_BAD_REQUEST,
        "File size too large. Maximum size allowed is 5MB.",
        error="FILE_TOO_LARGE",
    )
    TOO_MANY_FILES = APIError(
        status.HTTP_400_BAD_REQUEST,
        "Too many files. Only one file is allowed.",
        error="TOO_MANY_FILES",
    )
    UNEXPECTED_FIELD = APIError(
        status.HTTP_400_BAD_REQUEST,
        "Unexpected field name. Use 'profilePicture' as field name.",
        error="UNEXPECTED_FIELD",
    )
    INVALID_FILE_TYPE = APIError(
        status.HTTP_400_BAD_REQUEST,
        "Invalid file type. Only JPEG, PNG, GIF, WebP, BMP, and TIFF images are allowed.",
        error="UPLOAD_ERROR",
    )

    INTERNAL_SERVER_ERROR = APIError(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error."
    )

    @staticmethod
    def validation_error(errors: List[str]) -> APIError:
        return APIError(status.HTTP_400_BAD_REQUEST, "Validation error.", errors=errors)

    @staticmethod
    def duplicate_key(field: str) -> APIError:
        return APIError(
            status.HTTP_400_BAD_REQUEST,
            f"{field} already exists.",
            error=f"{field.upper()}_EXISTS",
        )
