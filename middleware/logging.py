"""Logging middleware."""
import uuid
import json
import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def log_request(
    request_id: str,
    driver: Optional[str],
    state: str,
    sender: str = "",
    message: str = "",
    event: Optional[str] = None,
    metadata: Dict[str, Any] = None
):
    """
    Log a handled webhook with structured data.

    Args:
        request_id: Unique request ID
        driver: Name of the driver that handled the request
        state: Final dispatch state
        sender: Sender ID of the first message
        message: Text of the first message
        event: Event name, if the request carried one
        metadata: Additional metadata
    """
    log_data = {
        "request_id": request_id,
        "driver": driver,
        "state": state,
        "sender": sender,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if event:
        log_data["event"] = event

    if metadata:
        log_data["metadata"] = metadata

    logger.info(json.dumps(log_data, ensure_ascii=False))


def generate_request_id() -> str:
    """Generate unique request ID."""
    return str(uuid.uuid4())
