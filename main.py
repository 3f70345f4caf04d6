#!/usr/bin/env python3
"""
Chat Relay
Relays browser conversations to a chat-completion API with a server-side
system prompt and streams the reply back as it arrives.
"""

import sys

import uvicorn

from chat_relay.app import create_app
from chat_relay.shared.config import load_config, setup_logging, logger
from chat_relay.shared.errors import ConfigurationError
from chat_relay.shared.utils import get_local_ip


def main() -> None:
    try:
        config = load_config()
    except ConfigurationError as e:
        # Logging is not configured yet; make sure the reason is visible.
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    app = create_app(config)

    host = config.server.host
    port = config.server.port

    display_host = get_local_ip() if host == "0.0.0.0" else host
    logger.warning("Starting Chat Relay on %s:%s (model %s)", host, port, config.upstream.model)
    logger.warning("Chat URL: http://%s:%s/api/chat", display_host, port)
    logger.warning("Metrics: http://%s:%s/metrics", display_host, port)

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["loggers"]["uvicorn.access"]["level"] = config.server.http_log_level.upper()

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=log_config,
        timeout_graceful_shutdown=30,
        server_header=False
    )


if __name__ == "__main__":
    main()
