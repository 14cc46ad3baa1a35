# worker/workflows/base.py
from datetime import timedelta
from typing import Any

from temporalio.common import RetryPolicy

from src.jellybridge.runtime.config.config_data import RetryConfig
from src.jellybridge.runtime.context import get_config


def _retry_policy(retry: RetryConfig, **extra: Any) -> RetryPolicy:
    return RetryPolicy(
        maximum_attempts=retry.maximum_attempts,
        initial_interval=timedelta(seconds=retry.initial_interval_seconds),
        backoff_coefficient=retry.backoff_coefficient,
        maximum_interval=timedelta(seconds=retry.maximum_interval_seconds),
        **extra,
    )


def default_workflow_opts() -> dict[str, Any]:
    cfg = get_config().temporal
    return {
        "execution_timeout": timedelta(seconds=cfg.workflows.execution_timeout_s),
        "run_timeout": timedelta(seconds=cfg.workflows.run_timeout_s),
        "task_timeout": timedelta(seconds=cfg.workflows.task_timeout_s),
        "retry_policy": _retry_policy(cfg.workflows.retry),
    }


# Use this INSIDE workflows when executing activities.
def default_activity_opts() -> dict[str, Any]:
    cfg = get_config().temporal
    return {
        "start_to_close_timeout": timedelta(
            seconds=cfg.activities.start_to_close_timeout_s
        ),
        "schedule_to_close_timeout": timedelta(
            seconds=cfg.activities.schedule_to_close_timeout_s
        ),
        "retry_policy": _retry_policy(
            cfg.activities.retry,
            non_retryable_error_types=["ConfigurationError"],
        ),
    }
