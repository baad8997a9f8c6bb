"""
S3 operations utilities for Lambda handlers.

This module provides reusable functions for reading objects from Amazon S3.
"""

import logging
import os

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,  # 10 seconds to establish connection
    read_timeout=60      # 60 seconds max for reading response
)

# Initialize S3 client at module level (thread-safe, reused across invocations)
s3_client = boto3.client(
    's3',
    region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-east-1')),
    config=s3_config
)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")

# Error codes S3 returns for a missing object (HeadObject has no body, so only "404")
_NOT_FOUND_CODES = ('NoSuchKey', '404', 'NotFound')


def fetch_object(bucket: str, key: str) -> bytes:
    """
    Fetch raw object content from S3.

    Args:
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        bytes: The raw object content

    Raises:
        FileNotFoundError: If the object does not exist
        ValueError: If the bucket does not exist
        ClientError: For other S3 errors

    Example:
        >>> content = fetch_object(
        ...     bucket="my-report-bucket",
        ...     key="threat-reports/2025-11/threat_matches_2025-11-12.jsonl"
        ... )
    """
    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
        return response['Body'].read()
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code in _NOT_FOUND_CODES:
            logger.error(f"S3 object not found: s3://{bucket}/{key}")
            raise FileNotFoundError(f"Object not found in S3: {key}")
        elif error_code == 'NoSuchBucket':
            logger.error(f"S3 bucket not found: {bucket}")
            raise ValueError(f"S3 bucket not found: {bucket}")
        else:
            logger.error(f"Failed to fetch from S3 s3://{bucket}/{key}: {e}")
            raise


def object_exists_and_not_empty(bucket: str, key: str) -> bool:
    """
    Check whether an S3 object exists and has content.

    Args:
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        bool: True if the object exists with a non-zero size

    Raises:
        ClientError: For S3 errors other than a missing object
    """
    try:
        response = s3_client.head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code in _NOT_FOUND_CODES:
            return False
        logger.error(f"Failed to check S3 object s3://{bucket}/{key}: {e}")
        raise

    return response.get('ContentLength', 0) > 0
