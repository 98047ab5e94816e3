import os
from dataclasses import dataclass

import psycopg2
from botocore.exceptions import BotoCoreError, ClientError
from flask import Flask, Response, request, send_file
from werkzeug.exceptions import HTTPException

from .logging_config import get_logger

log = get_logger(__name__)

MAX_UPLOAD_BYTES = 10 << 20
KYC_UPLOADED = "KYC_UPLOADED"
FORM_PATH = os.path.join(os.path.dirname(__file__), "index.html")
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@dataclass(frozen=True)
class AppContext:
    database: object
    store: object
    instance_id: str


def text(body, status=200):
    return Response(body, status=status, mimetype="text/plain")


def create_app(ctx: AppContext) -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES

    # Unmatched paths fall through to the form page.
    @app.route("/", methods=ALL_METHODS, provide_automatic_options=False)
    @app.route("/<path:subpath>", methods=ALL_METHODS, provide_automatic_options=False)
    def form(subpath=None):
        if request.method != "GET":
            log.warning("invalid_method", path=request.path, method=request.method, instance=ctx.instance_id)
            return text("Method not allowed", 405)
        log.info("serve_form", path=request.path, instance=ctx.instance_id)
        return send_file(FORM_PATH, mimetype="text/html")

    @app.route("/health", methods=ALL_METHODS, provide_automatic_options=False)
    def health():
        if request.method != "GET":
            return text("Method not allowed", 405)
        try:
            ctx.database.ping()
        except psycopg2.Error as exc:
            log.warning("health_check_failed", err=str(exc), instance=ctx.instance_id)
            return text("Database connection failed", 503)
        return text("OK")

    @app.route("/submit", methods=ALL_METHODS, provide_automatic_options=False)
    def submit():
        if request.method != "POST":
            log.warning("invalid_method", path="/submit", method=request.method, instance=ctx.instance_id)
            return text("Method not allowed", 405)

        # Werkzeug parses lazily; oversize bodies surface here as 413.
        try:
            files, fields = request.files, request.form
        except HTTPException:
            return text("Failed to parse form", 400)
        if request.mimetype != "multipart/form-data":
            return text("Failed to parse form", 400)
        # Malformed multipart bodies parse silently to empty dicts.
        if not files and not fields:
            return text("Failed to parse form", 400)

        document = files.get("kyc_document")
        if document is None or not document.filename:
            return text("Failed to read KYC document", 400)

        try:
            bucket, key = ctx.store.upload(document.stream, document.filename)
        except (BotoCoreError, ClientError) as exc:
            log.error("s3_upload_failed", filename=document.filename, err=str(exc), instance=ctx.instance_id)
            return text("Failed to upload document to S3", 500)
        finally:
            document.close()

        name = fields.get("name", "")
        email = fields.get("email", "")
        phone = fields.get("phone", "")

        try:
            user_id = ctx.database.insert_submission(name, email, phone, bucket, key, KYC_UPLOADED)
        except (psycopg2.Error, ValueError) as exc:
            # psycopg2 rejects NUL characters client-side with ValueError.
            # The uploaded object stays in the bucket without a row.
            log.error(
                "db_insert_failed",
                name=name,
                email=email,
                phone=phone,
                err=str(exc),
                instance=ctx.instance_id,
            )
            return text("Failed to store data in RDS", 500)

        log.info("user_created", id=user_id, name=name, email=email, phone=phone, instance=ctx.instance_id)
        return text("User data stored by instance: " + ctx.instance_id)

    return app
