import os
from dataclasses import dataclass

DB_PREFIX = "RDS_DB"
BUCKET_KEY = "S3_BUCKET_NAME"

REQUIRED_KEYS = tuple(
    f"{DB_PREFIX}_{suffix}"
    for suffix in ("HOST", "PORT", "USER", "PASSWORD", "NAME", "SSLMODE")
) + (BUCKET_KEY,)


class ConfigError(Exception):
    pass


class MissingSettingError(ConfigError):
    def __init__(self, key):
        super().__init__(f"missing required setting {key}")
        self.key = key


class InvalidSettingError(ConfigError):
    def __init__(self, key, value):
        super().__init__(f"invalid value for {key}: {value!r}")
        self.key = key
        self.value = value


@dataclass(frozen=True)
class Settings:
    db_host: str
    db_port: str
    db_user: str
    db_password: str
    db_name: str
    db_sslmode: str
    bucket: str
    port: int = 8080
    log_level: str = "INFO"
    db_pool_max: int = 10

    def dsn(self) -> str:
        return (
            f"host={self.db_host} port={self.db_port} user={self.db_user} "
            f"password={self.db_password} dbname={self.db_name} sslmode={self.db_sslmode}"
        )


def _required(environ, key):
    val = environ.get(key, "")
    if val == "":
        raise MissingSettingError(key)
    return val


def _int(environ, key, default):
    raw = environ.get(key, "")
    if raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidSettingError(key, raw) from None


def load_settings(environ=None) -> Settings:
    """Read settings from the environment.

    Raises MissingSettingError for the first absent required key. Never exits
    the process; that decision belongs to the caller.
    """
    if environ is None:
        environ = os.environ
    values = [_required(environ, key) for key in REQUIRED_KEYS]
    return Settings(
        *values,
        port=_int(environ, "PORT", 8080),
        log_level=environ.get("LOG_LEVEL", "") or "INFO",
        db_pool_max=_int(environ, "DB_POOL_MAX", 10),
    )
