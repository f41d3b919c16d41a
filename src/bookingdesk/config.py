from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_PATH = "config.toml"
DATA_SOURCES = ("live", "fixture")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"


@dataclass(frozen=True)
class WebhookConfig:
    url: str = ""
    timeout: float = 15.0


@dataclass(frozen=True)
class SecurityConfig:
    site_url: str | None = None
    allowed_origins: tuple[str, ...] = ()

    def origins(self) -> tuple[str, ...]:
        if self.site_url and self.site_url not in self.allowed_origins:
            return self.allowed_origins + (self.site_url,)
        return self.allowed_origins


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    secret_key: str
    data_source: str
    db: DbConfig
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


def config_path_from_env() -> Path:
    return Path(os.environ.get("BOOKINGDESK_CONFIG", DEFAULT_CONFIG_PATH))


def load_config(path: str | Path) -> AppConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    return parse_config(data)


def parse_config(data: dict) -> AppConfig:
    try:
        app = data["app"]
        db = data["db"]
        webhook = data.get("webhook", {})
        security = data.get("security", {})

        data_source = str(app.get("data_source", "live")).lower()
        if data_source not in DATA_SOURCES:
            raise ConfigError(f"app.data_source must be one of {DATA_SOURCES}, got {data_source!r}")

        origins = security.get("allowed_origins", [])
        if isinstance(origins, str):
            origins = [origins]

        return AppConfig(
            name=str(app.get("name", "Booking Desk")),
            log_level=str(app.get("log_level", "INFO")).upper(),
            secret_key=str(app["secret_key"]),
            data_source=data_source,
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
            ),
            webhook=WebhookConfig(
                url=str(webhook.get("url", "")).strip(),
                timeout=float(webhook.get("timeout", 15.0)),
            ),
            security=SecurityConfig(
                site_url=(str(security["site_url"]).rstrip("/") if security.get("site_url") else None),
                allowed_origins=tuple(str(o).rstrip("/") for o in origins),
            ),
        )
    except ConfigError:
        raise
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
