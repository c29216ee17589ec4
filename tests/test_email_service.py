import smtplib

from clinicaflow.config import Settings
from clinicaflow.services import email_service as email_module
from clinicaflow.services.email_service import RESET_SUBJECT, EmailService


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, message):
        self.messages.append(message)


class RefusingSMTP(FakeSMTP):
    def login(self, user, password):
        raise smtplib.SMTPAuthenticationError(535, b"authentication failed")


def smtp_settings(**overrides):
    values = {
        "SMTP_HOST": "smtp.example.com",
        "SMTP_PORT": 587,
        "SMTP_USER": "mailer",
        "SMTP_PASS": "hunter22",
        "EMAIL_FROM": "noreply@allooral.com",
        "FRONTEND_URL": "https://app.allooral.com/",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_unconfigured_service_does_not_send(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)

    service = EmailService(smtp_settings(SMTP_HOST=""))
    assert not service.is_configured
    assert service.send_password_reset_email("alice@example.com", "123456") is False
    assert FakeSMTP.instances == []


def test_password_reset_email_contents(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)

    service = EmailService(smtp_settings())
    assert service.send_password_reset_email("alice@example.com", "042917", "Alice <Admin>") is True

    server = FakeSMTP.instances[0]
    assert (server.host, server.port) == ("smtp.example.com", 587)
    assert server.started_tls
    assert server.logged_in == ("mailer", "hunter22")

    message = server.messages[0]
    assert message["Subject"] == RESET_SUBJECT
    assert message["To"] == "alice@example.com"
    text = message.get_body(preferencelist=("plain",)).get_content()
    html = message.get_body(preferencelist=("html",)).get_content()
    assert "042917" in text
    assert "https://app.allooral.com/?mode=reset&email=alice%40example.com&token=042917" in text
    assert "Alice &lt;Admin&gt;" in html
    assert "15 minuto(s)" in text


def test_delivery_failure_returns_false(monkeypatch):
    monkeypatch.setattr(email_module.smtplib, "SMTP", RefusingSMTP)
    service = EmailService(smtp_settings())
    assert service.send_email("alice@example.com", "Hi", "body") is False


def test_port_465_uses_implicit_tls(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", FakeSMTP)

    service = EmailService(smtp_settings(SMTP_PORT=465))
    assert service.send_email("alice@example.com", "Hi", "body") is True
    assert not FakeSMTP.instances[0].started_tls
