# storefront/api/errors.py
from fastapi import HTTPException

from storefront.domain.errors import (
    InvalidInput,
    InvalidStateTransition,
    NotFound,
    PaymentProviderError,
    PersistenceError,
    SignatureInvalid,
    StorefrontError,
)
from storefront.services.coupon_service import CouponRejected
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def http_error(e: StorefrontError) -> HTTPException:
    """Map a service error onto the status code the client sees."""
    if isinstance(e, CouponRejected):
        return HTTPException(
            status_code=400,
            detail={"valid": False, "reason": e.validation.reason.value, "code": e.validation.code},
        )
    if isinstance(e, InvalidStateTransition):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidInput):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SignatureInvalid):
        return HTTPException(status_code=400, detail=f"Webhook Error: {e}")
    if isinstance(e, PaymentProviderError):
        # provider details stay in the log
        return HTTPException(status_code=502, detail="Unable to start checkout")
    if isinstance(e, PersistenceError):
        logger.error(f"Storage failure: {e}")
        return HTTPException(status_code=500, detail="Storage unavailable")
    return HTTPException(status_code=500, detail="Internal error")
