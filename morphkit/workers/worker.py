import structlog

from morphkit.shared.logging_setup import init_logging
from morphkit.workers.host import TransducerHost

logger = structlog.get_logger()


# --- Process Entry Point ---

def run_worker(conn, host: TransducerHost = None) -> None:
    """
    Serve protocol requests on `conn` until EOF or a None sentinel.

    Runs inside the spawned worker process. Every request gets exactly one
    reply, in arrival order.
    """
    init_logging()
    if host is None:
        # Imported here: the container imports the transport, which imports this module.
        from morphkit.shared.container import container
        host = container.transducer_host()
    logger.info("worker_started")

    try:
        while True:
            try:
                message = conn.recv()
            except EOFError:
                logger.info("worker_channel_closed")
                break
            if message is None:
                logger.info("worker_shutdown_requested")
                break

            reply = host.handle(message)
            try:
                conn.send(reply)
            except (BrokenPipeError, OSError) as e:
                logger.warning("worker_reply_failed", error=str(e))
                break
    finally:
        host.close()
        conn.close()
        logger.info("worker_stopped")


__all__ = ["run_worker"]
