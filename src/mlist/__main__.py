"""Entry point for the mlist server."""

import sys

import structlog
import uvicorn
from pydantic import ValidationError

from mlist.app import create_app
from mlist.config import Settings
from mlist.logging import configure_logging

logger = structlog.get_logger()


def main() -> None:
    """Entry point for ``python -m mlist``.

    Exits with status 1 when the configuration is invalid, for example when
    ``root_dir`` does not exist.
    """
    configure_logging()

    try:
        settings = Settings()
    except ValidationError as e:
        logger.error("invalid_configuration", errors=e.errors(include_url=False))
        sys.exit(1)

    configure_logging(debug=settings.debug)

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
    )


if __name__ == "__main__":
    main()
