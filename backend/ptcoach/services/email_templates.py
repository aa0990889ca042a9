# backend/ptcoach/services/email_templates.py
from dataclasses import dataclass
from datetime import datetime, timedelta

from ptcoach.core.config import settings

TR_MONTHS = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
]


@dataclass
class EmailTemplate:
    subject: str
    html: str
    text: str | None = None


def format_tr_date(value: datetime) -> str:
    return f"{value.day:02d} {TR_MONTHS[value.month - 1]} {value.year}"


def _layout(title: str, body: str) -> str:
    return (
        '<div style="font-family:Arial,sans-serif;max-width:560px;margin:0 auto;color:#111827;">'
        f'<h2 style="color:#2563eb;">{title}</h2>{body}'
        f'<p style="font-size:12px;color:#9ca3af;margin-top:32px;">{settings.APP_NAME}</p>'
        '</div>'
    )


def verification_email(name: str | None, verification_url: str) -> EmailTemplate:
    greeting = name or "Merhaba"
    return EmailTemplate(
        subject=f"{settings.APP_NAME} | E-posta Doğrulaması",
        html=_layout(
            "Hesabınızı doğrulayın",
            f"<p>{greeting},</p>"
            "<p>Kaydınızı tamamlamak için aşağıdaki bağlantıya tıklayarak e-posta adresinizi doğrulayın.</p>"
            f'<p><a href="{verification_url}">E-posta adresimi doğrula</a></p>'
        ),
        text=f"{greeting},\n\nKaydınızı tamamlamak için bu bağlantıya gidin: {verification_url}\n\n{settings.APP_NAME}",
    )


def package_assigned_email(
    name: str | None,
    package_name: str,
    duration_in_days: int,
    price: int,
    currency: str,
    trainer_name: str | None,
    starts_at: datetime,
) -> EmailTemplate:
    ends_at = starts_at + timedelta(days=max(duration_in_days, 0))
    trainer_line = f"<p>Eğitmeniniz: <strong>{trainer_name}</strong></p>" if trainer_name else ""
    return EmailTemplate(
        subject=f"{settings.APP_NAME} | {package_name} paketiniz tanımlandı",
        html=_layout(
            "Paketiniz hazır",
            f"<p>{name or 'Merhaba'},</p>"
            f"<p><strong>{package_name}</strong> paketi hesabınıza tanımlandı.</p>"
            "<ul>"
            f"<li>Başlangıç: {format_tr_date(starts_at)}</li>"
            f"<li>Bitiş: {format_tr_date(ends_at)}</li>"
            f"<li>Süre: {duration_in_days} gün</li>"
            f"<li>Ücret: {price} {currency}</li>"
            "</ul>"
            f"{trainer_line}"
        ),
    )


def weekly_checkin_email(name: str | None) -> EmailTemplate:
    return EmailTemplate(
        subject=f"{settings.APP_NAME} | Haftalık kontrol hatırlatması",
        html=_layout(
            "Haftalık kontrol zamanı",
            f"<p>{name or 'Merhaba'},</p>"
            "<p>Haftalık planını gözden geçirmeni ve ilerlemeni paylaşmanı istiyoruz. "
            "Soruların varsa hemen bize yazabilirsin.</p>"
        ),
    )
