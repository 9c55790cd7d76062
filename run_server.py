#!/usr/bin/env python3
"""
Helper script to run the FastAPI diagnostics server for channel language detection.
"""

import os
import sys
import logging

import uvicorn

from config import configure_logging, load_config

logger = logging.getLogger(__name__)


def check_cache(cache_file: str) -> bool:
    """Check if an enrichment run has produced a cache yet"""
    if not os.path.exists(cache_file):
        logger.warning(f"No language cache found at {cache_file}. /cache lookups will return 404 until enrich.py runs.")
        return False
    logger.info(f"Language cache found at {cache_file}")
    return True


def main():
    """Main function to run the server"""
    config = load_config()
    configure_logging(config.log_level)

    # Warning only, the detection endpoints work without a cache
    check_cache(config.cache_file)

    host = os.environ.get("LANGUAGE_API_HOST", "0.0.0.0")
    port = int(os.environ.get("LANGUAGE_API_PORT", "8000"))
    logger.info(f"Starting server on http://{host}:{port} (docs at /docs)")

    try:
        uvicorn.run(
            "main:app",
            host=host,
            port=port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
