"""Shared fixtures: environment, fake collaborators and a Flask test client."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from kyc_intake.app import AppContext, create_app
from kyc_intake.db import Database
from kyc_intake.storage import DocumentStore

ENV = {
    "RDS_DB_HOST": "db.internal",
    "RDS_DB_PORT": "5432",
    "RDS_DB_USER": "app",
    "RDS_DB_PASSWORD": "s3cret",
    "RDS_DB_NAME": "kyc",
    "RDS_DB_SSLMODE": "require",
    "S3_BUCKET_NAME": "kyc-bucket",
}


@pytest.fixture
def env(monkeypatch):
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("PORT", "LOG_LEVEL", "DB_POOL_MAX"):
        monkeypatch.delenv(key, raising=False)
    return dict(ENV)


@pytest.fixture
def database():
    db = MagicMock(spec=Database)
    db.insert_submission.return_value = 1
    return db


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def store(s3_client):
    return DocumentStore(s3_client, "kyc-bucket", clock=lambda: datetime(2024, 3, 5, 14, 7, 9))


@pytest.fixture
def app(database, store):
    app = create_app(AppContext(database=database, store=store, instance_id="web-1"))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
