"""SMTP üzerinden doğrulama e-postası gönderimi."""

import logging
import smtplib
from email.message import EmailMessage
from html import escape

from config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """E-posta gönderilemediğinde fırlatılır."""


def build_verification_url(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/verify-email?token={token}"


def _verification_html(name: str, url: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background: #667eea; padding: 30px; border-radius: 10px; text-align: center;">
        <h1 style="color: white; margin: 0;">{escape(settings.app_name)}</h1>
        <p style="color: white; margin: 10px 0 0 0;">E-posta Doğrulama</p>
      </div>
      <div style="background: #f8f9fa; padding: 30px; border-radius: 10px; margin: 20px 0;">
        <h2 style="color: #333; margin-top: 0;">Merhaba {escape(name)}!</h2>
        <p style="color: #666;">Hesabınızı aktifleştirmek için aşağıdaki bağlantıya tıklayarak e-posta adresinizi doğrulayın.</p>
        <p style="text-align: center; margin: 30px 0;">
          <a href="{url}" style="background: #667eea; color: white; padding: 15px 30px; text-decoration: none; border-radius: 25px;">
            E-posta Adresimi Doğrula
          </a>
        </p>
        <p style="color: #666; font-size: 14px;">Bağlantı çalışmıyorsa aşağıdaki adresi tarayıcınıza kopyalayın:</p>
        <p style="color: #667eea; font-size: 14px; word-break: break-all;">{url}</p>
      </div>
      <p style="color: #6c757d; font-size: 13px; text-align: center;">
        Bu işlemi siz yapmadıysanız bu e-postayı görmezden gelebilirsiniz.
      </p>
    </div>
    """


def send_verification_email(email: str, name: str, token: str) -> None:
    """Doğrulama bağlantısını gönderir.

    SMTP kimlik bilgileri tanımlı değilse (geliştirme ortamı) bağlantı yalnızca loglanır.
    Gönderim başarısız olursa EmailDeliveryError fırlatılır.
    """
    url = build_verification_url(token)

    if not settings.email_configured:
        logger.warning("E-posta yapılandırılmamış; %s için doğrulama bağlantısı: %s", email, url)
        return

    message = EmailMessage()
    message["Subject"] = f"E-posta Doğrulama - {settings.app_name}"
    message["From"] = f"{settings.smtp_from_name} <{settings.smtp_from_email or settings.smtp_username}>"
    message["To"] = email
    message.set_content(f"Merhaba {name},\n\nHesabınızı doğrulamak için: {url}\n")
    message.add_alternative(_verification_html(name, url), subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Doğrulama e-postası gönderilemedi (%s): %s", email, e)
        raise EmailDeliveryError("E-posta gönderilemedi") from e

    logger.info("Doğrulama e-postası gönderildi: %s", email)
