"""Server runner — bind the listening socket, then hand it to uvicorn.

Learn: The socket is bound before uvicorn starts so a port that's already
taken surfaces as ListenError with a clear message, instead of uvicorn
logging the OSError and calling sys.exit() from deep inside its startup.
"""

import logging
import socket

import structlog
import uvicorn

from telemetry_relay.config import Settings

logger = structlog.get_logger()


class ListenError(Exception):
    """Raised when the relay can't bind its listening port."""


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind (but don't listen on) a TCP socket for host:port."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ListenError(f"Cannot listen on {host}:{port}: {e.strerror or e}") from e
    sock.set_inheritable(True)
    return sock


def run_server(settings: Settings, log_level: str = "info") -> None:
    """Run the relay until interrupted.

    Raises FeedError if the configured feed can't load, ListenError if the
    port can't be bound.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # main builds its default app on import
    from telemetry_relay.main import create_app

    app = create_app(settings)
    sock = bind_socket(settings.host, settings.port)
    logger.info("relay.listening", host=settings.host, port=settings.port)

    config = uvicorn.Config(app, log_level=log_level)
    server = uvicorn.Server(config)
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
