"""Transaction log for document deliveries (one log line per delivery)."""

import json
from datetime import UTC, datetime

from app.utils.logger import logger


def log_transaction(
    phone_number: str,
    original_file_name: str,
    stored_file_name: str,
    status: str,
    message_id: str | None = None,
) -> dict:
    """Emit a single JSON line describing a delivery; nothing is persisted."""
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "phoneNumber": phone_number,
        "originalFileName": original_file_name,
        "storedFileName": stored_file_name,
        "status": status,
        "messageId": message_id,
    }
    logger.info(f"Transaction: {json.dumps(entry)}")
    return entry
