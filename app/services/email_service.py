# app/services/email_service.py
from datetime import datetime
from typing import List
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import aiosmtplib
from jinja2 import Environment

from app.core.config import settings
from app.core.logging import logger

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
                  color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0; }
        .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 8px 8px; }
        .box { background: white; border: 1px solid #e5e5e5; border-radius: 6px; padding: 16px; margin: 16px 0; }
        .button { display: inline-block; padding: 12px 24px; background: #667eea;
                 color: white; text-decoration: none; border-radius: 4px; margin: 20px 0; }
        .footer { text-align: center; padding: 20px; color: #666; font-size: 12px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{{ title }}</h1></div>
        <div class="content">{{ body | safe }}</div>
        <div class="footer"><p>&copy; {{ year }} PicWall</p></div>
    </div>
</body>
</html>
"""

_WELCOME_BODY = """
<h2>Hi {{ shop_name }},</h2>
<p>Your photo wall is ready. Guests can start uploading right away.</p>
<div class="box">
    <p><strong>Admin login:</strong> <a href="{{ login_url }}">{{ login_url }}</a></p>
    <p><strong>Username:</strong> {{ username }}</p>
    <p><strong>Password:</strong> {{ password }}</p>
</div>
<p>Please change your password after your first login.</p>
<p><strong>Plan:</strong> {{ plan_name }}, valid until {{ period_end }}</p>
<a href="{{ display_url }}" class="button">Open the display</a>
"""

_RECEIPT_BODY = """
<h2>Thank you, {{ shop_name }}!</h2>
<div class="box">
    <p><strong>Plan:</strong> {{ plan_name }}</p>
    <p><strong>Amount:</strong> {{ amount }} {{ currency }}</p>
    <p><strong>Paid at:</strong> {{ paid_at }}</p>
    <p><strong>Reference:</strong> {{ reference }}</p>
</div>
<p>Your service is active until {{ period_end }}.</p>
"""

_EXPIRY_BODY = """
<h2>Hi {{ shop_name }},</h2>
<p>Your <strong>{{ plan_name }}</strong> plan expires in <strong>{{ days_left }} day{{ 's' if days_left != 1 }}</strong>
({{ period_end }}).</p>
<p>Renew now to keep your photo wall online.</p>
<a href="{{ renew_url }}" class="button">Renew</a>
"""


# Guest and signup input (shop and plan names) lands in these templates
_templates = Environment(autoescape=True)


def format_amount(amount: int) -> str:
    """Minor units to a two-decimal string"""
    return f"{amount / 100:,.2f}"


class EmailService:
    """Transactional email. Sending is best effort: failures are logged, never raised."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL

    def _render(self, title: str, body_template: str, **context) -> str:
        body = _templates.from_string(body_template).render(**context)
        return _templates.from_string(_LAYOUT).render(title=title, body=body, year=datetime.utcnow().year)

    async def send_email(
        self,
        to: List[str],
        subject: str,
        html_content: str,
        text_content: str = None
    ) -> bool:
        """Send an email; returns whether it went out"""
        if not self.smtp_host:
            logger.warning("SMTP not configured, skipping email")
            return False

        try:
            message = MIMEMultipart('alternative')
            message['Subject'] = subject
            message['From'] = self.from_email
            message['To'] = ', '.join(to)

            if text_content:
                message.attach(MIMEText(text_content, 'plain'))

            message.attach(MIMEText(html_content, 'html'))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True,
            )

            logger.info(f"Email sent to {to}: {subject}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email: {str(e)}")
            return False

    async def send_welcome_email(
        self,
        email: str,
        shop_name: str,
        tenant_slug: str,
        username: str,
        password: str,
        plan_name: str,
        period_end: datetime,
    ) -> bool:
        """Welcome message carrying the bootstrap admin credentials"""
        html_content = self._render(
            "Welcome to PicWall!",
            _WELCOME_BODY,
            shop_name=shop_name,
            username=username,
            password=password,
            plan_name=plan_name,
            period_end=period_end.strftime("%Y-%m-%d %H:%M UTC"),
            login_url=f"{settings.FRONTEND_URL}/{tenant_slug}/admin/login",
            display_url=f"{settings.FRONTEND_URL}/{tenant_slug}/display",
        )
        text_content = (
            f"Welcome to PicWall, {shop_name}!\n\n"
            f"Admin login: {settings.FRONTEND_URL}/{tenant_slug}/admin/login\n"
            f"Username: {username}\nPassword: {password}\n"
        )
        return await self.send_email([email], f"Welcome to PicWall - {shop_name}", html_content, text_content)

    async def send_payment_receipt(
        self,
        email: str,
        shop_name: str,
        plan_name: str,
        amount: int,
        currency: str,
        reference: str,
        period_end: datetime,
    ) -> bool:
        html_content = self._render(
            "Payment receipt",
            _RECEIPT_BODY,
            shop_name=shop_name,
            plan_name=plan_name,
            amount=format_amount(amount),
            currency=(currency or "").upper(),
            reference=reference,
            paid_at=datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC"),
            period_end=period_end.strftime("%Y-%m-%d"),
        )
        return await self.send_email([email], f"Payment receipt - {shop_name}", html_content)

    async def send_expiry_warning(
        self,
        email: str,
        shop_name: str,
        plan_name: str,
        days_left: int,
        period_end: datetime,
    ) -> bool:
        html_content = self._render(
            "Your plan is about to expire",
            _EXPIRY_BODY,
            shop_name=shop_name,
            plan_name=plan_name,
            days_left=days_left,
            period_end=period_end.strftime("%Y-%m-%d"),
            renew_url=f"{settings.FRONTEND_URL}/pricing",
        )
        return await self.send_email([email], f"Your plan is about to expire - {shop_name}", html_content)
