import logging
import signal
import sys
import threading

import pydantic
from werkzeug.serving import make_server

from logs import configure_logging
from mutate import create_app

LOG = logging.getLogger(__name__)


def serve(app, settings, stop=None):
    """Serve the app over TLS until `stop` is set, then shut down.

    Shutdown stops accepting connections first, then gives requests that
    are still running up to `settings.shutdown_grace_seconds` to finish.
    Whatever is still running after that is abandoned.
    """
    stop = stop or threading.Event()
    server = make_server(
        settings.host,
        settings.port,
        app,
        threaded=True,
        ssl_context=(settings.tls_cert, settings.tls_key),
    )
    # Handler threads must not keep server_close() waiting past the grace period.
    server.daemon_threads = True
    server.block_on_close = False

    def _serve():
        try:
            server.serve_forever()
        except Exception:
            LOG.exception("HTTP server error")
        finally:
            stop.set()

    thread = threading.Thread(target=_serve, name="webhook-server", daemon=True)
    thread.start()
    LOG.info("serving on %s:%d", settings.host, server.port)

    stop.wait()
    server.shutdown()
    thread.join()
    LOG.info("Stopped serving new connections")

    if not app.inflight.wait_idle(settings.shutdown_grace_seconds):
        LOG.warning(
            "abandoning %d in-flight requests after %ss",
            app.inflight.count,
            settings.shutdown_grace_seconds,
        )

    server.server_close()
    LOG.info("Graceful shutdown complete")


def main():
    try:
        app = create_app()
    except pydantic.ValidationError as err:
        LOG.error("invalid configuration: %s", err)
        sys.exit(1)

    settings = app.settings
    configure_logging(settings.level)

    if settings.node_regex is not None:
        LOG.warning(
            "node name filter %r is enabled; only the selected part of each "
            "node name will be used in pod names",
            settings.node_regex.pattern,
        )

    stop = threading.Event()

    def _stop(signum, frame):
        LOG.info("caught %s", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    try:
        serve(app, settings, stop)
    except OSError as err:
        LOG.error("unable to start server: %s", err)
        sys.exit(1)


if __name__ == "__main__":
    main()
