"""
api/routes/v1/inquiries.py -- Buyer-to-owner contact.

Routes:
  POST /sendEmail -- email a listing's owner (requires auth)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import EmailRequest, MessageResponse
from auth.dependencies import get_current_user
from notify.mailer import Inquiry

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/sendEmail", response_model=MessageResponse)
def send_email(request: Request, body: EmailRequest) -> MessageResponse:
    """Send the inquiry through the configured SMTP relay."""
    request.app.state.context.mailer.send_inquiry(
        Inquiry(
            name=body.name,
            email=body.email,
            number=body.number,
            message=body.message,
            car_owner_email=body.car_owner_email,
            subject=body.subject,
        )
    )
    return MessageResponse(message="Email sent successfully!")
