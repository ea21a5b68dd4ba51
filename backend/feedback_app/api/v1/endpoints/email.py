from fastapi import APIRouter, Depends

from feedback_app.core.config import settings
from feedback_app.core.exceptions import EmailDeliveryError
from feedback_app.core.logging_config import logger
from feedback_app.models.user import User
from feedback_app.modules.auth.dependencies import get_current_admin
from feedback_app.schemas.email import EmailTestRequest
from feedback_app.services.email_service import email_service

router = APIRouter()


@router.get("/status")
async def email_status(admin: User = Depends(get_current_admin)):
    """SMTP configuration check plus a live login attempt"""
    config = email_service.check_configuration()
    connected = await email_service.verify_connection() if config["is_configured"] else False

    return {
        **config,
        "connection_ok": connected,
        "smtp_host": email_service.smtp_host,
        "smtp_port": email_service.smtp_port,
        "smtp_user": email_service.masked_user,
        "account_emails_enabled": settings.SEND_ACCOUNT_EMAILS,
    }


@router.post("/test")
async def send_test_email(
    payload: EmailTestRequest,
    admin: User = Depends(get_current_admin)
):
    sent = await email_service.send_test_email(payload.email)
    if not sent:
        raise EmailDeliveryError(payload.email, "Failed to send test email. Check the SMTP settings.")

    logger.info(f"[Email] Test email sent to {payload.email} by {admin.email}")
    return {"message": f"Test email sent to {payload.email}"}
