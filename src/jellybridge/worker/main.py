# worker/main.py
from __future__ import annotations

import asyncio
import signal
from datetime import timedelta

import typer
from loguru import logger
from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleSpec,
)
from temporalio.worker import Worker

from src.jellybridge.api.http.app_data import build_application_dependencies
from src.jellybridge.api.utils.app_startup import configure_logging
from src.jellybridge.runtime.config.config_data import TemporalConfig
from src.jellybridge.runtime.context import get_config
from src.jellybridge.worker.activities.lifecycle import LifecycleActivities
from src.jellybridge.worker.workflows.expiry_sweep import (
    EXPIRY_SWEEP_WORKFLOW_ID,
    ExpirySweepWorkflow,
)

app = typer.Typer(no_args_is_help=True, add_completion=False)

SCHEDULE_ID = "jellybridge-expiry-sweep-schedule"


def _require_temporal() -> TemporalConfig:
    temporal_config = get_config().temporal
    if not temporal_config.enabled:
        logger.error("Temporal is disabled by configuration.")
        raise typer.Exit(code=2)
    return temporal_config


async def _connect(temporal_config: TemporalConfig) -> Client:
    logger.info(
        "Connecting to Temporal: url={}, namespace={}, tls={}",
        temporal_config.url,
        temporal_config.namespace,
        temporal_config.tls,
    )
    return await Client.connect(
        temporal_config.url,
        namespace=temporal_config.namespace,
        tls=temporal_config.tls,
    )


async def _run_worker(worker: Worker, drain_timeout: float) -> None:
    """Run ``worker`` until SIGINT/SIGTERM, then drain gracefully."""
    run_task = asyncio.create_task(worker.run(), name="worker:lifecycle")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for s in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(s, stop_event.set)
        except NotImplementedError:
            # Windows / non-main thread
            pass

    logger.info("Worker started; polling queue {}", worker.task_queue)
    try:
        await stop_event.wait()
        logger.info("Shutdown signal received; draining worker (timeout: {}s)...", drain_timeout)
        await asyncio.wait_for(asyncio.shield(worker.shutdown()), timeout=drain_timeout)
        logger.info("Worker drained cleanly.")
    except TimeoutError:
        logger.warning("Drain timed out after {}s; cancelling run loop.", drain_timeout)
        run_task.cancel()
    finally:
        await asyncio.gather(run_task, return_exceptions=True)


@app.command(name="serve")
def serve(
    drain_timeout: float = typer.Option(
        600.0, "--drain-timeout", help="Seconds to wait for graceful drain on shutdown."
    ),
):
    """Start a Temporal worker for the lifecycle queue."""
    configure_logging()
    temporal_config = _require_temporal()

    async def _amain() -> int:
        deps = build_application_dependencies(with_scheduler=False)
        activities = LifecycleActivities(deps)
        client = await _connect(temporal_config)
        worker = Worker(
            client,
            task_queue=temporal_config.task_queue,
            workflows=[ExpirySweepWorkflow],
            activities=[activities.run_expiry_sweep],
        )
        try:
            await _run_worker(worker, drain_timeout)
            return 0
        except Exception:
            logger.exception("Worker crashed")
            return 1
        finally:
            await deps.aclose()

    raise typer.Exit(code=asyncio.run(_amain()))


@app.command(name="schedule")
def schedule(
    interval_seconds: int | None = typer.Option(
        None, "--interval", help="Seconds between sweeps (defaults to lifecycle.interval_seconds)."
    ),
):
    """Register the periodic expiry sweep schedule with Temporal."""
    configure_logging()
    temporal_config = _require_temporal()
    lifecycle = get_config().lifecycle
    every = interval_seconds or lifecycle.interval_seconds

    async def _amain() -> int:
        client = await _connect(temporal_config)
        try:
            await client.create_schedule(
                SCHEDULE_ID,
                Schedule(
                    action=ScheduleActionStartWorkflow(
                        ExpirySweepWorkflow.run,
                        lifecycle.warn_window_days,
                        id=EXPIRY_SWEEP_WORKFLOW_ID,
                        task_queue=temporal_config.task_queue,
                    ),
                    spec=ScheduleSpec(intervals=[ScheduleIntervalSpec(every=timedelta(seconds=every))]),
                ),
            )
        except ScheduleAlreadyRunningError:
            logger.warning("Schedule {} already exists", SCHEDULE_ID)
            return 0
        logger.info("Registered schedule {} every {}s", SCHEDULE_ID, every)
        return 0

    raise typer.Exit(code=asyncio.run(_amain()))


def main():
    app()


if __name__ == "__main__":
    main()
