"""Outbound email over SMTP"""

from __future__ import annotations

import logging
import smtplib
from html import escape
from email.message import EmailMessage
from typing import Optional
from urllib.parse import quote

from clinicaflow.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Redefinição de Senha - Allo Oral Clinic"

_RESET_TEXT = """Olá{greeting_name},

Recebemos uma solicitação para redefinir a senha da sua conta no Allo Oral Clinic.

Seu código de verificação é: {code}

Você também pode acessar o link abaixo:
{reset_url}

Este código expira em {minutes} minuto(s).

Se você não solicitou esta redefinição, ignore este email. Sua senha permanecerá inalterada.

Atenciosamente,
Equipe Allo Oral Clinic"""

_RESET_HTML = """<!DOCTYPE html>
<html lang="pt-BR">
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #0D8ABC;">Redefinição de Senha</h2>
  <p>Olá{greeting_name},</p>
  <p>Recebemos uma solicitação para redefinir a senha da sua conta.</p>
  <p style="font-size: 28px; letter-spacing: 6px; font-weight: bold;">{code}</p>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{reset_url}" style="background-color: #0D8ABC; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block;">
      Redefinir Senha
    </a>
  </div>
  <p>Este código expira em {minutes} minuto(s).</p>
  <p>Se você não solicitou esta redefinição, ignore este email.</p>
  <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">
  <p style="color: #666; font-size: 12px;">Allo Oral Clinic - Sistema de Gestão</p>
</body>
</html>"""


class EmailService:
    """SMTP sender. Unconfigured or failing delivery returns False instead of raising."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def is_configured(self) -> bool:
        return bool(self.config.SMTP_HOST and self.config.SMTP_USER and self.config.SMTP_PASS)

    def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> bool:
        if not self.is_configured:
            logger.error("Email service not configured (SMTP_HOST/SMTP_USER/SMTP_PASS), cannot send email")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.config.EMAIL_FROM
        message["To"] = to
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            self._deliver(message)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", to)
            return False

        logger.info("Email sent to %s: %s", to, subject)
        return True

    def _deliver(self, message: EmailMessage) -> None:
        host = self.config.SMTP_HOST
        port = self.config.SMTP_PORT
        timeout = self.config.SMTP_TIMEOUT_SECONDS

        if port == 465:
            server = smtplib.SMTP_SSL(host, port, timeout=timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=timeout)

        with server:
            if port != 465:
                server.starttls()
            server.login(self.config.SMTP_USER, self.config.SMTP_PASS)
            server.send_message(message)

    def build_reset_url(self, email: str, code: str) -> str:
        # SPA-friendly link: keep path on '/', pass state via query params
        base = self.config.FRONTEND_URL.rstrip("/")
        return f"{base}/?mode=reset&email={quote(email, safe='')}&token={quote(code, safe='')}"

    def send_password_reset_email(
        self,
        email: str,
        code: str,
        user_name: Optional[str] = None,
    ) -> bool:
        context = {
            "greeting_name": f" {user_name}" if user_name else "",
            "code": code,
            "reset_url": self.build_reset_url(email, code),
            "minutes": self.config.PASSWORD_RESET_EXPIRE_MINUTES,
        }
        html_context = dict(context, greeting_name=escape(context["greeting_name"]),
                            reset_url=escape(context["reset_url"]))
        return self.send_email(
            email,
            RESET_SUBJECT,
            _RESET_TEXT.format(**context),
            _RESET_HTML.format(**html_context),
        )


email_service = EmailService()
