"""
Tavara.care Coordination Service - WhatsApp Sign-in Routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tavara.api.dependencies import check_rate_limit, get_request_id, validate_request
from tavara.api.schemas import SendCodeRequest, VerifyCodeRequest
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.services.whatsapp_auth_service import WhatsAppAuthService

router = APIRouter(prefix="/auth/whatsapp", tags=["Auth"])
whatsapp_auth_service = WhatsAppAuthService()


@router.post(
    "/send-code",
    summary="Send a verification code",
    description="Outside production a failed delivery returns the code as dev_code"
)
def send_code(
    body: SendCodeRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    _: None = Depends(check_rate_limit),
    context: dict = Depends(validate_request)
):
    log_request(endpoint="/auth/whatsapp/send-code", method="POST", request_id=request_id, role=body.role)
    return whatsapp_auth_service.send_code(db, body.phone_number, body.role, body.country_code)


@router.post("/verify-code", summary="Verify a code and sign in")
def verify_code(
    body: VerifyCodeRequest,
    db: Session = Depends(get_db),
    _: None = Depends(check_rate_limit),
    context: dict = Depends(validate_request)
):
    return whatsapp_auth_service.verify_code(db, body.phone_number, body.code, body.role)
