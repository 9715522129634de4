"""SMTP email notification adapter."""

from __future__ import annotations

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from adapters.notification_formatting import format_plain, format_subject
from core.config import EmailConfig
from core.errors import NotifierError
from core.models import Clock, TargetStatus, utcnow


class EmailNotifier:
    """Notifier adapter that mails every alert to the configured address."""

    def __init__(self, config: EmailConfig, timeout: float = 10.0, clock: Clock = utcnow) -> None:
        self._config = config
        self._timeout = timeout
        self._clock = clock

    def build_message(self, status: TargetStatus) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self._config.from_address
        msg["To"] = self._config.to_address
        msg["Subject"] = format_subject(status)
        msg.attach(MIMEText(format_plain(status, self._clock()), "plain"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        cfg = self._config
        try:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=self._timeout) as server:
                if cfg.use_tls:
                    server.starttls()
                if cfg.smtp_username and cfg.smtp_password:
                    server.login(cfg.smtp_username, cfg.smtp_password)
                server.send_message(msg)
        except smtplib.SMTPAuthenticationError as exc:
            raise NotifierError(f"SMTP authentication error: {exc}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifierError(f"SMTP error via {cfg.smtp_host}:{cfg.smtp_port}: {exc}") from exc

    async def send(self, status: TargetStatus) -> bool:
        if not self._config.to_address:
            return False
        # smtplib blocks, so delivery runs in a worker thread.
        await asyncio.to_thread(self._deliver, self.build_message(status))
        return True
