"""Launch the voice order intake service with Uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

logger = logging.getLogger("voice_intake.launcher")


def main() -> None:
    from voice_intake.main import app  # noqa: WPS433 (import position)

    port = int(os.environ.get("PORT", "8000"))
    logger.debug("Starting server on port %s", port)
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
