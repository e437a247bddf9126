# server.py
import logging
import sys
from typing import Optional

import click
import uvicorn

from api import create_app
from config import ConfigError, load_settings

logger = logging.getLogger(__name__)

# connection-level deadline; individual verifications are not cancelled by it
CONNECTION_TIMEOUT = 30


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--host", help="Interface to bind (default: HOST or 0.0.0.0).")
@click.option("--port", type=int, help="Port to listen on (default: PORT or 8080).")
def main(host: Optional[str], port: Optional[int]) -> None:
    """Run the email verification API."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.critical("%s", e)
        sys.exit(1)
    logging.getLogger().setLevel(settings.log_level)

    app = create_app(settings)
    host = host or settings.host
    port = port or settings.port
    logger.info("Server is running on %s:%d (max batch %d)", host, port, settings.max_batch)
    uvicorn.run(app, host=host, port=port, timeout_keep_alive=CONNECTION_TIMEOUT, log_config=None)


if __name__ == "__main__":
    main()
