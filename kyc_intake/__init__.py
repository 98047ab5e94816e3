"""KYC intake form: stores submitted documents in S3 and records them in Postgres."""

__version__ = "0.1.0"
