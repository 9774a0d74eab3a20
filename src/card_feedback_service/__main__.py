"""Entry point for the card feedback service.

Usage::

    python -m card_feedback_service
"""

from __future__ import annotations

import uvicorn

from card_feedback_service.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "card_feedback_service.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level,
    )


if __name__ == "__main__":
    main()
