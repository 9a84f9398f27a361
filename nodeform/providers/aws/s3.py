"""S3-based object store for published user data."""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Final, cast

from botocore.exceptions import ClientError
from loguru import logger

from nodeform.exceptions import PublishError

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client
    from mypy_boto3_s3.literals import BucketLocationConstraintType

log = logger.bind(component="s3")

MISSING_BUCKET_CODES: Final = frozenset({"404", "NoSuchBucket", "NotFound"})
OWNED_BUCKET_CODES: Final = frozenset({"BucketAlreadyOwnedByYou"})


class S3ObjectStore:
    """Object store using S3 buckets in a single region."""

    scheme = "s3"

    def __init__(self, region: str, client: S3Client | None = None) -> None:
        """Initialize S3 object store.

        Args:
            region: Region new buckets are created in.
            client: Preconfigured S3 client. Created lazily if None.
        """
        self.region = region
        self._client = client

    @cached_property
    def _s3(self) -> S3Client:
        if self._client is not None:
            return self._client

        import boto3

        return boto3.client("s3", region_name=self.region)

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket if it does not exist yet.

        Raises:
            PublishError: The bucket is missing and could not be created,
                or it is not accessible.
        """
        try:
            self._s3.head_bucket(Bucket=bucket)
            return
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code not in MISSING_BUCKET_CODES:
                raise PublishError(f"bucket {bucket} is not accessible: {e}") from e

        try:
            # LocationConstraint is required outside us-east-1
            if self.region == "us-east-1":
                self._s3.create_bucket(Bucket=bucket)
            else:
                location = cast("BucketLocationConstraintType", self.region)
                self._s3.create_bucket(
                    Bucket=bucket,
                    CreateBucketConfiguration={"LocationConstraint": location},
                )
            log.info("Created bucket {bucket} in {region}", bucket=bucket, region=self.region)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code not in OWNED_BUCKET_CODES:
                raise PublishError(f"failed to create bucket {bucket}: {e}") from e

    def put(self, bucket: str, key: str, data: bytes) -> None:
        """Store data in S3.

        Args:
            bucket: Destination bucket.
            key: Object key.
            data: Bytes to store.
        """
        try:
            self._s3.put_object(Bucket=bucket, Key=key, Body=data)
        except ClientError as e:
            raise PublishError(f"failed to upload s3://{bucket}/{key}: {e}") from e
