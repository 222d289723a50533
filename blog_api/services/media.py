import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from blog_api.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")


class UploadedImage(BaseModel):
    url: str
    key: str


class MediaService:
    """Featured image storage backed by an S3 bucket."""

    def __init__(self):
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = settings.S3_BUCKET
        self.folder = settings.S3_POST_IMAGE_FOLDER.strip("/")

    def upload_image(self, file_content: bytes, file_name: str, content_type: str) -> Optional[UploadedImage]:
        """
        Upload an image and return its public URL and object key.

        Args:
            file_content: Binary content of the file
            file_name: Original filename, only its extension is kept
            content_type: MIME type of the file

        Returns:
            The stored image, or None if the upload failed
        """
        file_extension = os.path.splitext(file_name or "")[1].lower()
        s3_key = f"{self.folder}/{uuid.uuid4()}{file_extension}"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=file_content,
                ContentType=content_type
                # Public read is granted by the bucket policy, not object ACLs
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading %s to S3: %s", s3_key, e)
            return None

        return UploadedImage(url=self.get_public_url(s3_key), key=s3_key)

    def delete_image(self, s3_key: str) -> bool:
        """
        Delete an image by object key.

        Returns:
            True if successful, False otherwise
        """
        if not s3_key:
            return True
        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=s3_key
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("Error deleting %s from S3: %s", s3_key, e)
            return False

    def get_public_url(self, s3_key: str) -> str:
        return f"{settings.S3_BASE_URL}/{s3_key}"


_media_service: Optional[MediaService] = None


def get_media_service() -> MediaService:
    global _media_service
    if _media_service is None:
        _media_service = MediaService()
    return _media_service
