"""Xendit invoice callback handler."""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.services.settlement import handle_invoice_callback
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


def _verify_callback_token(token: Optional[str]) -> bool:
    expected = get_settings().XENDIT_CALLBACK_TOKEN
    if not token or not expected:
        return False
    return hmac.compare_digest(token, expected)


@router.post("/xendit/invoice")
async def xendit_invoice_callback(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Xendit invoice callback (no auth; verified by x-callback-token).
    Always acknowledges once verified so the gateway stops retrying.
    """
    if not _verify_callback_token(request.headers.get("x-callback-token")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid callback token"
        )

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Invoice callback with malformed body")
        return {"received": True, "processed": False}
    if not isinstance(payload, dict):
        return {"received": True, "processed": False}

    return await handle_invoice_callback(db, payload)
