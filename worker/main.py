# ============================================================================
# WORKER MAIN ENTRY POINT
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Worker process entry point
# PURPOSE: Wire channel, Lambda client and worker; serve health probes
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Main Entry Point

Starts a relay worker process that:
1. Loads configuration from the environment
2. Builds the channel and the Lambda client
3. Drains the channel into the function until shutdown

Usage:
    python -m worker.main

Environment Variables:
    LAMBDA_FUNCTION_NAME: Function to invoke (required)
    LAMBDA_REGION: AWS region (default us-east-1)
    LAMBDA_ACCESS_KEY / LAMBDA_SECRET_KEY: Static credentials (optional)
    RELAY_CHANNEL: "servicebus" (default) or "memory"
    RELAY_QUEUE: Service Bus queue name
    SERVICEBUS_CONNECTION_STRING: Service Bus connection
    SERVICE_BUS_FQDN: Service Bus namespace (if using managed identity)
    USE_MANAGED_IDENTITY: "true" to use Azure managed identity
    RELAY_BACKOFF_SECONDS / RELAY_MAX_BACKOFF_SECONDS: Driver pacing
    RELAY_LOG_LEVEL / RELAY_LOG_FORMAT: Logging
    PORT: Health server port (default 8000)
"""

import asyncio
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from core.logging import ComponentType, configure_logging, get_logger
from infrastructure.channel import Channel, MemoryChannel
from infrastructure.lambda_invoker import Invoker, LambdaInvoker
from worker.contracts import WorkerConfig
from worker.delivery import DeliveryWorker
from worker.runner import DeliveryRunner
from __version__ import __version__, BUILD_DATE

logger = get_logger(__name__, ComponentType.WORKER)

# Worker state for health checks
_worker_healthy = True
_worker_status = "starting"
_worker_config: Optional[WorkerConfig] = None
_runner: Optional[DeliveryRunner] = None


# ============================================================================
# FACTORIES
# ============================================================================

def create_channel(config: WorkerConfig) -> Channel:
    """
    Create the channel named by config.channel_type.

    Raises:
        ValueError for unknown channel types
    """
    if config.channel_type == "memory":
        logger.info(f"Using memory channel (capacity={config.memory_capacity})")
        return MemoryChannel(capacity=config.memory_capacity)

    if config.channel_type == "servicebus":
        from infrastructure.service_bus import ServiceBusChannel

        logger.info(f"Using Service Bus channel: {config.queue_name}")
        return ServiceBusChannel(
            queue_name=config.queue_name,
            connection_string=config.service_bus_connection,
            fully_qualified_namespace=config.service_bus_namespace,
            use_managed_identity=config.use_managed_identity,
            max_wait_time=config.receive_wait_seconds,
        )

    raise ValueError(f"Unknown channel type: {config.channel_type}")


def create_worker(
    config: WorkerConfig,
    channel: Optional[Channel] = None,
    invoker: Optional[Invoker] = None,
) -> DeliveryWorker:
    """Build a DeliveryWorker, creating channel and invoker if not provided."""
    return DeliveryWorker(
        channel=channel or create_channel(config),
        invoker=invoker or LambdaInvoker.from_config(config.lambda_config),
        target_name=config.function_name,
        worker_id=config.worker_id,
    )


# ============================================================================
# HEALTH SERVER
# ============================================================================

async def health_handler(request):
    """
    Health check endpoint.

    Returns version, target configuration and delivery counters.
    """
    response_data = {
        "status": "healthy" if _worker_healthy else "unhealthy",
        "worker_status": _worker_status,
        "version": __version__,
        "build_date": BUILD_DATE,
        "worker_id": _worker_config.worker_id if _worker_config else "unknown",
        "function_name": _worker_config.function_name if _worker_config else "unknown",
        "channel": _worker_config.channel_type if _worker_config else "unknown",
        "consuming": _runner is not None and _runner.worker.is_running,
    }

    if _runner is not None:
        response_data["counters"] = _runner.worker.counters.to_dict()
        response_data["runner"] = {
            "cycles": _runner.stats.cycles,
            "failures": _runner.stats.failures,
            "permanent_failures": _runner.stats.permanent_failures,
            "last_error": _runner.stats.last_error,
        }

    if _worker_healthy:
        return web.json_response(response_data)
    return web.json_response(response_data, status=503)


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", health_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_get("/livez", health_handler)
    app.router.add_get("/readyz", health_handler)
    return app


async def start_health_server(port: int = 8000) -> web.AppRunner:
    """Start minimal HTTP server for health probes."""
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Health server started on port {port}")
    return runner


# ============================================================================
# MAIN
# ============================================================================

async def main() -> None:
    """Main entry point."""
    global _worker_healthy, _worker_status, _worker_config, _runner

    configure_logging(
        level=os.environ.get("RELAY_LOG_LEVEL", "INFO"),
        json_output=os.environ.get("RELAY_LOG_FORMAT", "").lower() == "json",
    )

    logger.info("=" * 60)
    logger.info(f"Lambda Relay Worker Starting v{__version__}")
    logger.info("=" * 60)

    try:
        config = WorkerConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    _worker_config = config
    logger.info(f"Worker ID: {config.worker_id}")
    logger.info(f"Function: {config.function_name} ({config.lambda_config.region})")
    logger.info(f"Channel: {config.channel_type} {config.queue_name}")

    health_runner = await start_health_server(config.health_port)

    worker = create_worker(config)
    _runner = DeliveryRunner(
        worker,
        backoff_seconds=config.backoff_seconds,
        max_backoff_seconds=config.max_backoff_seconds,
    )

    loop = asyncio.get_running_loop()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        _runner.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    _worker_status = "running"

    try:
        await asyncio.to_thread(_runner.run)
        _worker_status = "stopped"
    except Exception as e:
        logger.exception(f"Worker failed: {e}")
        _worker_healthy = False
        _worker_status = f"error: {str(e)[:100]}"
        sys.exit(1)
    finally:
        worker.channel.close()
        await health_runner.cleanup()

    logger.info("Lambda Relay Worker stopped")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
