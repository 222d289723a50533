from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Blog CMS API"
    DATABASE_URL: str = "sqlite:///./blog.db"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # JWT
    JWT_SECRET_KEY: str = "change_me_in_production_this_key_signs_every_token"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "blog-api"
    JWT_AUDIENCE: str = "blog-clients"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 6

    # Login lockout
    LOCKOUT_ENABLED: bool = True
    LOCKOUT_MAX_FAILED_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 5

    # AWS S3 (featured images)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET: str = "blog-media"
    S3_POST_IMAGE_FOLDER: str = "blog/posts"
    MAX_UPLOAD_BYTES: int = 5_000_000

    # Bootstrap admin, consumed once at startup
    SEED_ADMIN_EMAIL: Optional[str] = None
    SEED_ADMIN_PASSWORD: Optional[str] = None
    SEED_ADMIN_DISPLAY_NAME: str = "Admin"

    @property
    def S3_BASE_URL(self) -> str:
        return f"https://{self.S3_BUCKET}.s3.{self.AWS_REGION}.amazonaws.com"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
