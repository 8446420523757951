# novanector/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your_jwt_secret"


class Settings(BaseSettings):
    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "novanector"

    # JWT
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # bcrypt cost factor
    BCRYPT_ROUNDS: int = 12

    # Uploads
    UPLOAD_ROOT: str = "uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024
    DEFAULT_PROFILE_PICTURE: str = (
        "https://res.cloudinary.com/dz1qj3x8h/image/upload/v1735681234/"
        "novanector/default-profile-picture.png"
    )

    # Server
    FRONTEND_URL: str = "http://localhost:5173"
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def uses_default_jwt_secret(self) -> bool:
        return self.JWT_SECRET_KEY == DEFAULT_JWT_SECRET


settings = Settings()
