"""Envoi des alertes par e-mail (aperçu journalisé ou SMTP)."""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import Sequence

from station_pompage.core.settings import Settings

logger = logging.getLogger(__name__)


class PreviewNotifier:
    """Journalise le message sans l'envoyer (mode développement)."""

    def __init__(self):
        self.sent = []

    def notify(self, addresses: Sequence[str], subject: str, body: str) -> bool:
        logger.info(f"📧 Aperçu e-mail | À: {list(addresses)} | Sujet: {subject} | Corps: {body}")
        self.sent.append((list(addresses), subject, body))
        return True


class SmtpNotifier:
    """Envoi réel via un serveur SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "alertes@station-pompage.local",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def build_message(self, addresses: Sequence[str], subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = ", ".join(addresses)
        msg["Subject"] = subject
        return msg

    def notify(self, addresses: Sequence[str], subject: str, body: str) -> bool:
        """Envoie le message; retourne ``False`` en cas d'échec SMTP.

        Une liste vide de destinataires n'est pas envoyée au serveur mais
        est considérée comme un échec.
        """
        if not addresses:
            return False
        msg = self.build_message(addresses, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, list(addresses), msg.as_string())
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Erreur SMTP vers {self.host}:{self.port}: {e!r}")
            return False


def build_notifier(settings: Settings):
    """Choisit le mode d'envoi selon ``EMAIL_MODE``."""
    if settings.email_mode == "smtp":
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            sender=settings.email_from,
        )
    return PreviewNotifier()
