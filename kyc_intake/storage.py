import os
from datetime import datetime

import boto3

from .logging_config import get_logger

log = get_logger(__name__)

KEY_PREFIX = "kyc-docs"


def build_key(filename, now, prefix=KEY_PREFIX):
    # Unique only to the second; equal base names in the same second collide.
    return f"{prefix}/{now:%Y%m%d-%H%M%S}-{os.path.basename(filename)}"


class DocumentStore:
    """Writes uploaded documents to an S3 bucket."""

    def __init__(self, client, bucket, prefix=KEY_PREFIX, clock=datetime.now):
        self.client = client
        self.bucket = bucket
        self.prefix = prefix
        self.clock = clock

    @classmethod
    def from_settings(cls, settings):
        # Credentials and region come from the default AWS chain.
        return cls(boto3.client("s3"), settings.bucket)

    def upload(self, stream, filename):
        """Store ``stream`` and return ``(bucket, key)``.

        botocore errors propagate to the caller untouched.
        """
        key = build_key(filename, self.clock(), self.prefix)
        self.client.put_object(Bucket=self.bucket, Key=key, Body=stream)
        log.info("document_uploaded", bucket=self.bucket, key=key)
        return self.bucket, key
