"""Configuration loading for upwatch.

All user-editable settings (targets, alerting, logging) live in a single JSON
file for quick edits without touching Python. Secrets are read from the
environment (optionally a .env file) so they stay out of the config file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from core.config import (
    CHECK_INTERVAL,
    STANDOFF_INTERVAL,
    AlertConfig,
    EmailConfig,
    MonitorConfig,
    TelegramConfig,
)
from core.models import Target

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default config location; UPWATCH_CONFIG or --config take precedence.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

# Environment variables holding secrets.
SMTP_PASSWORD_ENV = "SMTP_PASSWORD"
BOT_TOKEN_ENV = "BOT_API"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE = "logs/upwatch.log"


@dataclass(frozen=True)
class LogSettings:
    """Logging options with secret values already resolved from the environment."""

    enabled: bool = True
    level: str = "INFO"
    console: bool = True
    file_path: Optional[str] = None
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    secrets: tuple[str, ...] = ()


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs to start monitoring."""

    config: MonitorConfig
    targets: list[Target]
    report_interval: int = 0
    log: LogSettings = field(default_factory=LogSettings)


def resolve_config_path(path: Optional[str] = None) -> str:
    return path or os.getenv("UPWATCH_CONFIG") or CONFIG_PATH


def _load_json_config(path: str) -> dict:
    """Load the JSON config with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _build_email(raw: dict) -> Optional[EmailConfig]:
    # Email is only enabled when both a server and a recipient are configured.
    if not raw.get("smtp_host") or not raw.get("to_address"):
        return None
    return EmailConfig(
        smtp_host=raw["smtp_host"],
        smtp_port=int(raw.get("smtp_port", 25)),
        from_address=raw.get("from_address") or raw["to_address"],
        to_address=raw["to_address"],
        smtp_username=raw.get("smtp_username"),
        smtp_password=os.getenv(SMTP_PASSWORD_ENV) or raw.get("smtp_password"),
        use_tls=bool(raw.get("use_tls", True)),
    )


def _build_telegram(raw: dict) -> Optional[TelegramConfig]:
    # Bot delivery needs both the chat id and the BOT_API token.
    token = os.getenv(BOT_TOKEN_ENV)
    chat_id = raw.get("chat_id")
    if not token or not chat_id:
        return None
    return TelegramConfig(bot_token=token, chat_id=str(chat_id))


def _build_targets(raw_targets: list[dict]) -> list[Target]:
    """Normalize target entries, skipping disabled ones."""

    targets: list[Target] = []
    for index, entry in enumerate(raw_targets, start=1):
        if not entry.get("enabled", True):
            continue
        addr = str(entry.get("addr", "")).strip()
        targets.append(
            Target(
                id=int(entry.get("id", index)),
                name=str(entry.get("name") or addr),
                addr=addr,
                host=str(entry.get("host", "")),
                interval=int(entry.get("interval", 0)),
                keyword=str(entry.get("keyword", "")),
                command=str(entry.get("command", "")),
            )
        )
    return targets


def _build_logging(raw: dict) -> LogSettings:
    file_cfg = raw.get("file", {})
    file_path = None
    if file_cfg.get("enabled", False):
        file_path = file_cfg.get("path", LOG_FILE)
        if not os.path.isabs(file_path):
            file_path = os.path.join(PROJECT_ROOT, file_path)

    # Redaction masks the values of the named variables, longest first so a
    # secret containing another is masked whole.
    redact = raw.get("redact", {})
    secrets: tuple[str, ...] = ()
    if redact.get("enabled", True):
        names = redact.get("patterns", [SMTP_PASSWORD_ENV, BOT_TOKEN_ENV])
        values = {os.getenv(name) for name in names} - {None, ""}
        secrets = tuple(sorted(values, key=len, reverse=True))

    return LogSettings(
        enabled=bool(raw.get("enabled", True)),
        level=str(raw.get("level", "INFO")).upper(),
        console=bool(raw.get("console", True)),
        file_path=file_path,
        max_bytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backup_count=int(file_cfg.get("backup_count", 5)),
        secrets=secrets,
    )


def build_settings(raw: dict) -> Settings:
    """Build typed settings from an already-parsed config dict."""

    alert = raw.get("alert", {})
    config = MonitorConfig(
        check_interval=int(raw.get("check_interval", CHECK_INTERVAL)),
        standoff=int(raw.get("standoff", STANDOFF_INTERVAL)),
        timeout=float(raw.get("timeout", 10)),
        alert=AlertConfig(
            interval=int(alert.get("interval", 3600)),
            email=_build_email(alert.get("email", {})),
            telegram=_build_telegram(alert.get("telegram", {})),
        ),
        verbose=bool(raw.get("verbose", False)),
    )
    return Settings(
        config=config,
        targets=_build_targets(raw.get("targets", [])),
        report_interval=int(raw.get("report", {}).get("interval", 0)),
        log=_build_logging(raw.get("logging", {})),
    )


def load_settings(path: Optional[str] = None) -> Settings:
    """Load .env secrets and the JSON config file."""

    load_dotenv()
    return build_settings(_load_json_config(resolve_config_path(path)))
