# s3.py
import logging
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .exceptions import DirectoryNotEmptyError, OperationNotSupportedError
from .storage.base import DirectoryProvider, FileProvider
from .storage.dto import DirectoryDetail, FileDetail

NOT_FOUND_CODES = ("404", "NoSuchBucket", "NoSuchKey", "NotFound")
DELETE_BATCH_SIZE = 1000  # DeleteObjects accepts at most 1000 keys per request


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _status_code(response: dict) -> Optional[int]:
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode")


class S3BucketProvider(DirectoryProvider):
    """
    Directory provider for Amazon S3 (and S3-compatible stores).
    Directories are buckets; the root is the bucket files are stored in.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        max_attempts: int = 3,
        connect_timeout: int = 10,
        read_timeout: int = 60,
        client=None,
    ):
        super().__init__(bucket)
        self.region = region
        if client is not None:
            self.client = client
            return

        kwargs: dict = {
            "region_name": region,
            "config": Config(
                retries={"max_attempts": max_attempts, "mode": "standard"},
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
            ),
        }
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if aws_access_key_id and aws_secret_access_key:
            kwargs["aws_access_key_id"] = aws_access_key_id
            kwargs["aws_secret_access_key"] = aws_secret_access_key
            if aws_session_token:
                kwargs["aws_session_token"] = aws_session_token
        self.client = boto3.client("s3", **kwargs)
        logging.info(f"S3 client initialized for bucket '{bucket}' in {region}.")

    def bucket_name(self, path: str) -> str:
        """The first segment of the path names the bucket; an empty path means the root bucket."""
        normalized = self.path_provider.normalize(path).lstrip("/")
        return normalized.split("/")[0] if normalized else self.root

    def get_directory(self, path: str) -> DirectoryDetail:
        return DirectoryDetail(name=self.bucket_name(path), provider=self)

    def create_directory(self, path: str) -> DirectoryDetail:
        bucket = self.bucket_name(path)
        kwargs: dict = {"Bucket": bucket}
        if self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            logging.info(f"Creating bucket '{bucket}'...")
            self.client.create_bucket(**kwargs)
        except ClientError as e:
            logging.error(f"Failed to create bucket '{bucket}': {e}")
            raise
        return self.get_directory(bucket)

    def directory_exists(self, path: str) -> bool:
        bucket = self.bucket_name(path)
        try:
            self.client.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                return False
            if code in ("403", "AccessDenied"):
                # The name is taken, just not by these credentials.
                return True
            logging.error(f"Failed to check bucket '{bucket}': {e}")
            raise

    def delete_directory(self, path: str, recursive: bool = False) -> bool:
        bucket = self.bucket_name(path)
        if not self.directory_exists(bucket):
            logging.warning(f"Bucket '{bucket}' not found. Nothing to delete.")
            return False

        try:
            if recursive:
                self._empty_bucket(bucket)
            else:
                listing = self.client.list_objects_v2(Bucket=bucket, MaxKeys=1)
                if listing.get("KeyCount", 0) > 0:
                    raise DirectoryNotEmptyError(f"Bucket '{bucket}' is not empty.")
            logging.info(f"Deleting bucket '{bucket}'...")
            self.client.delete_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            logging.error(f"Failed to delete bucket '{bucket}': {e}")
            raise

    def _empty_bucket(self, bucket: str):
        paginator = self.client.get_paginator("list_objects_v2")
        batch = []
        for page in paginator.paginate(Bucket=bucket):
            for obj in page.get("Contents", []):
                batch.append({"Key": obj["Key"]})
                if len(batch) == DELETE_BATCH_SIZE:
                    self._delete_batch(bucket, batch)
                    batch = []
        if batch:
            self._delete_batch(bucket, batch)

    def _delete_batch(self, bucket: str, batch: list):
        logging.info(f"Deleting {len(batch)} objects from bucket '{bucket}'...")
        self.client.delete_objects(
            Bucket=bucket, Delete={"Objects": batch, "Quiet": True}
        )


class S3ObjectProvider(FileProvider):
    """
    File provider for Amazon S3. Every supported operation is a single
    call to the S3 client; truncating and stream writes are not supported.
    """

    def __init__(
        self,
        directory_provider: S3BucketProvider,
        client=None,
        content_type: str = "text/plain",
    ):
        super().__init__(directory_provider)
        # Without an explicit client, share the bucket provider's one.
        self.client = client if client is not None else directory_provider.client
        self.content_type = content_type

    @property
    def bucket(self) -> str:
        return self.directory_provider.root

    def resolve_path(self, path: str) -> str:
        """The object key is the normalized path without its leading '/'."""
        key = self.path_provider.normalize(path).lstrip("/")
        if not key:
            raise ValueError(f"Path '{path}' does not name an S3 object.")
        return key

    def create_file(self, path: str) -> FileDetail:
        key = self.resolve_path(path)
        file = self.get_file(key)
        try:
            logging.info(f"Creating object s3://{self.bucket}/{key}...")
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=b"",
                ContentType=self.content_type,
                Metadata={"title": file.name},
            )
        except ClientError as e:
            logging.error(f"Failed to create object '{key}': {e}")
            raise
        return file

    def delete_file(self, path: str) -> bool:
        key = self.resolve_path(path)
        try:
            logging.info(f"Deleting s3://{self.bucket}/{key}...")
            response = self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            logging.error(f"Failed to delete object '{key}': {e}")
            raise
        return _status_code(response) == 204

    def file_exists(self, path: str) -> bool:
        key = self.resolve_path(path)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return False
            logging.error(f"Failed to check object '{key}': {e}")
            raise

    def open_file(self, path: str) -> BinaryIO:
        key = self.resolve_path(path)
        try:
            logging.info(f"Opening s3://{self.bucket}/{key} for reading...")
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            logging.error(f"Failed to open object '{key}': {e}")
            raise
        return response["Body"]

    def truncate_file(self, path: str):
        raise OperationNotSupportedError("truncate_file", "S3")

    def write_stream_to_file(self, path: str, stream: BinaryIO):
        raise OperationNotSupportedError("write_stream_to_file", "S3")
