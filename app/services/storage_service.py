"""S3 storage service for rendered contract documents."""

import logging
from io import BytesIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class StorageService:
    """S3/MinIO storage service for contract PDFs."""

    MAX_DOCUMENT_SIZE = 20 * 1024 * 1024  # 20MB

    def __init__(self, client=None) -> None:
        """Initialize S3 client."""
        self._client = client
        self._bucket = settings.s3_bucket_name

    @property
    def client(self):
        """Lazy-load S3 client."""
        if self._client is None:
            config = Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            )
            self._client = boto3.client(
                "s3",
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,  # For MinIO in dev
                config=config,
            )
        return self._client

    def contract_key(self, contract_id: str, version: int, content_hash: str) -> str:
        """S3 key like 'contracts/<id>/v1-<hash prefix>.pdf'."""
        return f"contracts/{contract_id}/v{version}-{content_hash[:12]}.pdf"

    def object_url(self, key: str) -> str:
        if settings.s3_endpoint_url:
            # MinIO in development
            return f"{settings.s3_endpoint_url}/{self._bucket}/{key}"
        # AWS S3
        return f"https://{self._bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def upload_contract(
        self,
        content: bytes,
        contract_id: str,
        version: int,
        content_hash: str,
        content_type: str = "application/pdf",
    ) -> str:
        """Upload a rendered contract (private) and return its URL.

        Raises:
            ExternalServiceError: If S3 rejects the upload
        """
        if len(content) > self.MAX_DOCUMENT_SIZE:
            raise ValueError(f"Document exceeds maximum size of {self.MAX_DOCUMENT_SIZE // 1024 // 1024}MB")

        key = self.contract_key(contract_id, version, content_hash)
        try:
            self.client.upload_fileobj(
                BytesIO(content),
                self._bucket,
                key,
                ExtraArgs={
                    "ContentType": content_type,
                    "Metadata": {"sha256": content_hash},
                },  # No ACL = private
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Contract upload failed for {key}: {e}")
            raise ExternalServiceError("s3", str(e)) from e

        return self.object_url(key)


# Singleton instance
storage_service = StorageService()
