"""Notepad entrypoint.

Run with:
  python -m notepad
"""

import uvicorn

from notepad.config import load_settings
from notepad.logging import setup_logging


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_dir, level=settings.log_level)
    uvicorn.run(
        "notepad.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,
    )

if __name__ == "__main__":
    main()
