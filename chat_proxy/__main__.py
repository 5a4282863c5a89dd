"""Run the chat proxy: ``python -m chat_proxy [config-file]``."""

import sys

import uvicorn

from chat_proxy.app import create_app
from chat_proxy.config import load_config


def main() -> None:
    config = load_config(sys.argv[1] if len(sys.argv) > 1 else None)
    # uvicorn handles SIGINT/SIGTERM; the lifespan hook logs the shutdown.
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
