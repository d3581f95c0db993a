"""Member photo uploads to S3."""

import uuid

from aiobotocore.session import AioSession, get_session
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from member_service.core.config import AwsConfig, MemberConfig
from member_service.core.constants import PHOTO_URL_KEY_PLACEHOLDER
from member_service.core.exceptions import BadRequestError, ExternalServiceError
from member_service.core.observability import trace_operation

SERVICE_NAME = "s3"
PHOTO_ACL = "public-read"


class PhotoStorage:
    """Uploads photos under random keys and returns their public URL.

    Args:
        aws_config: Region, credentials, bucket and S3 API version.
        member_config: Photo URL template and upload size limit.
        session: aiobotocore session; a new one is created when omitted.
    """

    def __init__(
        self,
        aws_config: AwsConfig,
        member_config: MemberConfig,
        session: AioSession | None = None,
    ) -> None:
        self.aws_config = aws_config
        self.member_config = member_config
        self._session = session or get_session()

    async def upload_photo(self, data: bytes, mimetype: str, file_name: str) -> str:
        """Upload a photo and return its public URL.

        Args:
            data: The file content.
            mimetype: The MIME type stored as the object's content type.
            file_name: The original file name, kept in the object metadata.

        Returns:
            str: The photo URL template with the generated key substituted.

        Raises:
            BadRequestError: If the file exceeds the upload size limit.
            ExternalServiceError: If the upload fails.
        """
        limit = self.member_config.file_upload_size_limit
        if len(data) > limit:
            raise BadRequestError(
                f"File size exceeds the limit of {limit} bytes",
                context={"size": len(data), "limit": limit},
            )

        key = str(uuid.uuid4())
        bucket = self.aws_config.photo_s3_bucket

        try:
            with trace_operation("s3.put_object", bucket=bucket):
                async with self._session.create_client(
                    "s3",
                    region_name=self.aws_config.aws_region,
                    api_version=self.aws_config.s3_api_version,
                    aws_access_key_id=self.aws_config.aws_access_key_id,
                    aws_secret_access_key=self.aws_config.aws_secret_access_key,
                ) as client:
                    await client.put_object(
                        Bucket=bucket,
                        Key=key,
                        Body=data,
                        ContentType=mimetype,
                        ACL=PHOTO_ACL,
                        Metadata={"fileName": file_name},
                    )
        except (BotoCoreError, ClientError) as exc:
            raise ExternalServiceError(
                f"Failed to upload photo {file_name}",
                service=SERVICE_NAME,
                context={"bucket": bucket, "key": key},
                cause=exc,
            ) from exc

        logger.info("Uploaded photo {} to s3://{}/{}", file_name, bucket, key)
        return self.member_config.photo_url_template.replace(
            PHOTO_URL_KEY_PLACEHOLDER, key
        )
