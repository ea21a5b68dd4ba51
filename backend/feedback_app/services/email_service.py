"""
Email Service for the Student Feedback System
=============================================
Handles account email over SMTP (aiosmtplib):
- Credentials for accounts created by an administrator
- Bulk registration summaries for the administrator
- Test messages from the admin email settings page

Sending never raises: every send_* method returns True/False and logs the
failure, so a broken mailbox never fails the request that triggered it.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Dict, Any
from datetime import datetime

from feedback_app.core.config import settings
from feedback_app.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.timeout = settings.SMTP_TIMEOUT
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def masked_user(self) -> Optional[str]:
        """SMTP user with the mailbox name hidden (ad***@example.com)"""
        if not self.smtp_user:
            return None
        name, _, domain = self.smtp_user.partition("@")
        masked = f"{name[:2]}***"
        return f"{masked}@{domain}" if domain else masked

    def _smtp_kwargs(self) -> Dict[str, Any]:
        # Port 465 speaks TLS from the first byte; everything else upgrades with STARTTLS
        implicit_tls = self.smtp_port == 465
        return {
            "hostname": self.smtp_host,
            "port": self.smtp_port,
            "use_tls": implicit_tls,
            "start_tls": self.use_tls and not implicit_tls,
            "timeout": self.timeout,
        }

    def check_configuration(self) -> Dict[str, Any]:
        """Report missing or suspicious SMTP settings"""
        issues: List[str] = []
        suggestions: List[str] = []

        if not self.smtp_user:
            issues.append("SMTP_USER is not set")
            suggestions.append("Set SMTP_USER to the sending mailbox in .env")
        if not self.smtp_password:
            issues.append("SMTP_PASSWORD is not set")
            suggestions.append("Set SMTP_PASSWORD to the mailbox (app) password in .env")
        if not self.smtp_host:
            issues.append("SMTP_HOST is not set")
            suggestions.append("Set SMTP_HOST, e.g. smtp.gmail.com")

        if self.smtp_host and "gmail" in self.smtp_host:
            if self.smtp_user and not self.smtp_user.endswith("@gmail.com"):
                issues.append("SMTP_USER should be a Gmail address when using Gmail")
                suggestions.append("Use the full Gmail address (e.g. user@gmail.com)")
            if self.smtp_password and len(self.smtp_password.replace(" ", "")) < 16:
                issues.append("SMTP_PASSWORD looks too short for a Gmail App Password")
                suggestions.append("Gmail requires a 16-character App Password, not the account password")

        return {
            "is_configured": not issues,
            "issues": issues,
            "suggestions": suggestions,
        }

    async def verify_connection(self) -> bool:
        """Open an SMTP session and log in"""
        if not self.is_configured:
            logger.warning("[Email] Cannot verify connection, SMTP credentials missing")
            return False

        try:
            smtp = aiosmtplib.SMTP(**self._smtp_kwargs())
            async with smtp:
                await smtp.login(self.smtp_user, self.smtp_password)
            logger.info(f"[Email/SMTP] Connection to {self.smtp_host}:{self.smtp_port} verified")
            return True
        except Exception as e:
            logger.error(f"[Email/SMTP] Connection check failed: {e}")
            return False

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so clients prefer the HTML part
            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                username=self.smtp_user,
                password=self.smtp_password,
                **self._smtp_kwargs()
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_password_email(self, user, password: str) -> bool:
        """Send login credentials to a newly created account"""
        role = user.role.value if hasattr(user.role, "value") else str(user.role)
        name = user.name or "there"
        login_url = f"{self.frontend_url}/login"
        subject = f"Your {settings.APP_NAME} account"

        roll_line_html = (
            f"<p><strong>Roll Number:</strong> {user.roll_number}</p>" if user.roll_number else ""
        )
        roll_line_text = f"Roll Number: {user.roll_number}\n" if user.roll_number else ""

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: #1e40af; color: white; padding: 24px; text-align: center; border-radius: 10px 10px 0 0; }}
                .content {{ background: #f9fafb; padding: 24px; border-radius: 0 0 10px 10px; }}
                .credentials {{ background: white; border: 1px solid #e5e7eb; padding: 16px; border-radius: 8px; }}
                .warning {{ color: #b45309; font-size: 14px; }}
                .button {{ display: inline-block; background: #1e40af; color: white; padding: 12px 24px; text-decoration: none; border-radius: 8px; }}
                .footer {{ text-align: center; margin-top: 24px; font-size: 12px; color: #6b7280; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>Welcome to {settings.APP_NAME}</h1>
                </div>
                <div class="content">
                    <p>Hi {name},</p>
                    <p>An account has been created for you as <strong>{role}</strong>.</p>
                    <div class="credentials">
                        <p><strong>Email:</strong> {user.email}</p>
                        <p><strong>Password:</strong> {password}</p>
                        {roll_line_html}
                    </div>
                    <p class="warning">Please change your password after your first login.</p>
                    <p style="text-align: center;">
                        <a href="{login_url}" class="button">Log in</a>
                    </p>
                </div>
                <div class="footer">
                    <p>&copy; {datetime.utcnow().year} {settings.APP_NAME}</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = (
            f"Welcome to {settings.APP_NAME}\n\n"
            f"Hi {name},\n\n"
            f"An account has been created for you as {role}.\n\n"
            f"Email: {user.email}\n"
            f"Password: {password}\n"
            f"{roll_line_text}\n"
            f"Please change your password after your first login.\n"
            f"Log in: {login_url}\n"
        )

        return await self.send_email(user.email, subject, html_content, text_content)

    async def send_bulk_registration_summary(self, admin_email: str, results: Dict[str, Any]) -> bool:
        """Tell the administrator how a bulk registration went"""
        successful = results.get("successful", [])
        failed = results.get("failed", [])
        subject = f"Bulk registration: {len(successful)} created, {len(failed)} failed"

        failed_rows = "".join(
            f"<tr><td>{row.get('email')}</td><td>{row.get('reason')}</td></tr>" for row in failed
        )
        failed_table = (
            f"<h3>Failed</h3><table border='1' cellpadding='6'>"
            f"<tr><th>Email</th><th>Reason</th></tr>{failed_rows}</table>"
            if failed else ""
        )

        html_content = f"""
        <html>
        <body style="font-family: sans-serif;">
            <h2>Bulk registration summary</h2>
            <p>Total rows: {results.get('total', len(successful) + len(failed))}</p>
            <p>Created: {len(successful)}</p>
            <p>Failed: {len(failed)}</p>
            {failed_table}
        </body>
        </html>
        """

        text_lines = [
            "Bulk registration summary",
            f"Created: {len(successful)}",
            f"Failed: {len(failed)}",
        ]
        text_lines += [f"- {row.get('email')}: {row.get('reason')}" for row in failed]

        return await self.send_email(admin_email, subject, html_content, "\n".join(text_lines))

    async def send_test_email(self, to_email: str) -> bool:
        subject = f"{settings.APP_NAME} test email"
        sent_at = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")
        html_content = f"""
        <html>
        <body style="font-family: sans-serif;">
            <h2>Email configuration works</h2>
            <p>This test message was sent by {settings.APP_NAME} at {sent_at}.</p>
        </body>
        </html>
        """
        text_content = f"Email configuration works.\nSent by {settings.APP_NAME} at {sent_at}."
        return await self.send_email(to_email, subject, html_content, text_content)


# Singleton instance
email_service = EmailService()
