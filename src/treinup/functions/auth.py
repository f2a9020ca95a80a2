"""Function key authentication."""

import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger(__name__)


async def verify_function_key(
    request: Request,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reject calls that do not carry the configured function key.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    expected = request.app.state.settings.functions_api_key
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        prefix = x_api_key[:4] if x_api_key else "none"
        logger.warning(f"Invalid function key attempted: {prefix}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid function key",
        )
