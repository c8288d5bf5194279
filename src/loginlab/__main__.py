"""loginlab entrypoint.

Run with:
  python -m loginlab
"""

import uvicorn

from loginlab.config import Settings
from loginlab.log import logger, setup_logging


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info(f"Server running on port {settings.port} (variant={settings.variant})")
    uvicorn.run(
        "loginlab.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,
    )

if __name__ == "__main__":
    main()
