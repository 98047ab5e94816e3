import socket
import sys

from .app import AppContext, create_app
from .config import DB_PREFIX, ConfigError, MissingSettingError, load_settings
from .db import Database, DatabaseStartupError
from .logging_config import configure_logging, get_logger
from .storage import DocumentStore

log = get_logger(__name__)


def instance_id():
    try:
        host = socket.gethostname()
    except OSError:
        host = ""
    return host or "unknown-instance"


def fatal(event, **kw):
    log.critical(event, **kw)
    sys.exit(1)


def main(argv=None):
    configure_logging()
    instance = instance_id()
    log.info("app_start", instance=instance)

    try:
        settings = load_settings()
    except MissingSettingError as exc:
        fatal("missing_env_var", key=exc.key)
    except ConfigError as exc:
        fatal("invalid_env_var", key=exc.key, err=str(exc))

    configure_logging(settings.log_level)

    try:
        database = Database.connect(settings, prefix=DB_PREFIX, instance_id=instance)
        database.ensure_schema()
    except DatabaseStartupError as exc:
        fatal(exc.event, db=DB_PREFIX, err=str(exc.cause))

    ctx = AppContext(database=database, store=DocumentStore.from_settings(settings), instance_id=instance)
    app = create_app(ctx)

    log.info("server_started", port=settings.port, instance=instance)
    try:
        app.run(host="0.0.0.0", port=settings.port, threaded=True)
    except SystemExit as exc:
        # Werkzeug reports bind errors itself and exits without raising OSError.
        fatal("server_failed", port=settings.port, code=exc.code)
    finally:
        database.close()


if __name__ == "__main__":
    main(sys.argv[1:])
