"""Application entry point for the upwatch monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from rich.console import Console

import settings
from adapters.command_notifier import CommandNotifier
from adapters.email_notifier import EmailNotifier
from adapters.probes import NetworkProber
from adapters.status_board import StatusBoard
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.config import MonitorConfig
from core.dispatch import AlertDispatcher
from core.errors import ConfigurationError, ProbeError
from core.models import Target, TargetStatus, parse_address, utcnow
from core.monitor import probe_options
from core.ports import NotifierPort
from core.runner import run_targets

NAME = "UPWATCH"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _SecretMaskingFormatter(logging.Formatter):
    """Replaces known secret values in every rendered record."""

    def __init__(self, secrets: tuple[str, ...]) -> None:
        super().__init__(fmt=settings.LOG_FORMAT, datefmt=settings.LOG_DATE_FORMAT)
        self._secrets = secrets

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _configure_logging(log: settings.LogSettings) -> None:
    if not log.enabled:
        return

    level = getattr(logging, log.level, logging.INFO)
    formatter = _SecretMaskingFormatter(log.secrets)
    handlers: list[logging.Handler] = []
    if log.console:
        handlers.append(logging.StreamHandler())
    if log.file_path:
        os.makedirs(os.path.dirname(log.file_path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log.file_path,
                maxBytes=log.max_bytes,
                backupCount=log.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)


def build_notifiers(config: MonitorConfig) -> list[NotifierPort]:
    """Select notification adapters from configuration.

    The per-target command always applies; email and Telegram are added when
    configured.
    """

    notifiers: list[NotifierPort] = [CommandNotifier()]
    if config.alert.email is not None:
        notifiers.append(EmailNotifier(config.alert.email, timeout=config.timeout))
    if config.alert.telegram is not None:
        notifiers.append(TelegramBotNotifier(config.alert.telegram))
    return notifiers


async def _report_loop(board: StatusBoard, interval: int, console: Console) -> None:
    while True:
        await asyncio.sleep(interval)
        console.print(board.render())


async def _watch(app_settings: settings.Settings) -> None:
    config = app_settings.config
    board = StatusBoard(verbose=config.verbose)
    dispatcher = AlertDispatcher(build_notifiers(config))
    prober = NetworkProber()

    watch = run_targets(app_settings.targets, config, prober, dispatcher, board)
    if app_settings.report_interval > 0:
        report = _report_loop(board, app_settings.report_interval, Console())
        await asyncio.gather(watch, report)
    else:
        await watch


def _run(config_path: Optional[str]) -> None:
    _print_banner()
    app_settings = settings.load_settings(config_path)
    _configure_logging(app_settings.log)

    LOGGER.info("Starting upwatch with %s targets", len(app_settings.targets))
    try:
        asyncio.run(_watch(app_settings))
    except KeyboardInterrupt:
        LOGGER.info("Stopped")


async def _probe_target(prober: NetworkProber, target: Target, config: MonitorConfig) -> TargetStatus:
    """Probe once outside the monitor loop, for the check command."""

    started = utcnow()
    try:
        address = parse_address(target.addr)
        result = await prober.probe(address, probe_options(target, config))
    except (ConfigurationError, ProbeError) as exc:
        return TargetStatus(target=target, online=False, since=started, error=str(exc), last_check=utcnow())
    return TargetStatus(
        target=target,
        online=result.healthy,
        since=started,
        error=result.message,
        last_check=utcnow(),
    )


async def _check_all(app_settings: settings.Settings) -> StatusBoard:
    board = StatusBoard()
    prober = NetworkProber()
    results = await asyncio.gather(
        *(_probe_target(prober, target, app_settings.config) for target in app_settings.targets)
    )
    for status in results:
        board.publish(status)
    return board


def _check(config_path: Optional[str]) -> int:
    app_settings = settings.load_settings(config_path)
    # Only warnings and errors; the table is the output.
    _configure_logging(replace(app_settings.log, level="WARNING"))

    board = asyncio.run(_check_all(app_settings))
    Console().print(board.render())
    _, offline = board.counts()
    return 1 if offline else 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="upwatch")
    parser.add_argument("--config", help="Path to config.json (default: UPWATCH_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start monitoring all targets")
    subparsers.add_parser("check", help="Probe every target once and print the results")

    args = parser.parse_args(argv)
    if args.command == "check":
        sys.exit(_check(args.config))
    _run(args.config)


if __name__ == "__main__":
    main()
