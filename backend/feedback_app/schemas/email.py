from pydantic import BaseModel, EmailStr


class EmailTestRequest(BaseModel):
    """Recipient for an SMTP test message"""
    email: EmailStr
