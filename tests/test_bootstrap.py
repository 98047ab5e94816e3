from unittest.mock import MagicMock

import pytest

from kyc_intake import bootstrap
from kyc_intake.config import REQUIRED_KEYS
from kyc_intake.db import DatabaseStartupError


@pytest.fixture
def wiring(monkeypatch):
    database = MagicMock()
    connect = MagicMock(return_value=database)
    flask_app = MagicMock()
    create_app = MagicMock(return_value=flask_app)
    monkeypatch.setattr(bootstrap.Database, "connect", connect)
    monkeypatch.setattr(bootstrap.DocumentStore, "from_settings", MagicMock())
    monkeypatch.setattr(bootstrap, "create_app", create_app)
    monkeypatch.setattr(bootstrap, "configure_logging", MagicMock())
    return {"connect": connect, "database": database, "create_app": create_app, "app": flask_app}


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_missing_setting_exits_before_listening(env, monkeypatch, wiring, key):
    monkeypatch.delenv(key)

    with pytest.raises(SystemExit) as exc_info:
        bootstrap.main([])

    assert exc_info.value.code == 1
    wiring["connect"].assert_not_called()
    wiring["app"].run.assert_not_called()


@pytest.mark.parametrize("event", ["db_open_failed", "db_ping_failed"])
def test_database_failure_exits(env, wiring, event):
    wiring["connect"].side_effect = DatabaseStartupError(event, Exception("down"))

    with pytest.raises(SystemExit) as exc_info:
        bootstrap.main([])

    assert exc_info.value.code == 1
    wiring["create_app"].assert_not_called()


def test_schema_failure_exits(env, wiring):
    wiring["database"].ensure_schema.side_effect = DatabaseStartupError("create_table_failed", Exception("denied"))

    with pytest.raises(SystemExit):
        bootstrap.main([])
    wiring["app"].run.assert_not_called()


def test_starts_server(env, monkeypatch, wiring):
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setattr(bootstrap, "instance_id", lambda: "web-7")

    bootstrap.main([])

    wiring["database"].ensure_schema.assert_called_once_with()
    ctx = wiring["create_app"].call_args.args[0]
    assert ctx.instance_id == "web-7"
    assert ctx.database is wiring["database"]
    wiring["app"].run.assert_called_once_with(host="0.0.0.0", port=9090, threaded=True)


def test_bind_failure_is_logged_and_exits(env, monkeypatch, wiring):
    # Werkzeug prints the bind error and calls sys.exit(1) from inside run().
    wiring["app"].run.side_effect = SystemExit(1)
    log = MagicMock()
    monkeypatch.setattr(bootstrap, "log", log)

    with pytest.raises(SystemExit) as exc_info:
        bootstrap.main([])

    assert exc_info.value.code == 1
    log.critical.assert_called_once_with("server_failed", port=8080, code=1)
    wiring["database"].close.assert_called_once_with()


def test_instance_id_from_hostname(monkeypatch):
    monkeypatch.setattr(bootstrap.socket, "gethostname", lambda: "ip-10-0-0-12")
    assert bootstrap.instance_id() == "ip-10-0-0-12"


def test_instance_id_fallback(monkeypatch):
    def broken():
        raise OSError("no hostname")

    monkeypatch.setattr(bootstrap.socket, "gethostname", broken)
    assert bootstrap.instance_id() == "unknown-instance"
