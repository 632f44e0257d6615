import logging

import uvicorn

from file_lru.api import create_app
from file_lru.config import SIDECAR_HOST, SIDECAR_PORT, configure_logging, load_settings
from file_lru.manager import FileCacheManager


def main():
    settings = load_settings()
    configure_logging(settings.log_level)

    manager = FileCacheManager.from_settings(settings)
    logging.info(f"File cache sidecar starting on {SIDECAR_HOST}:{SIDECAR_PORT}")
    uvicorn.run(create_app(manager), host=SIDECAR_HOST, port=SIDECAR_PORT)


if __name__ == '__main__':
    main()
