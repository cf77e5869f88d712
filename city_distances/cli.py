"""CLI entrypoint for the city distances batch job.

Configuration comes from the environment only:

    SUPABASE_URL=... SUPABASE_SERVICE_KEY=... city-distances

Optional: BATCH_DELAY_MS, BATCH_SIZE, MAX_KM, EXISTING_PAIRS_LIMIT,
STORE_MAX_ATTEMPTS, LOG_LEVEL, SUMMARY_PATH and CITY_DISTANCES_CONFIG (a
YAML file with the same settings in snake_case).
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Callable, Mapping

from city_distances.common.config_loader import PipelineConfig, load_config
from city_distances.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from city_distances.common.errors import PipelineError
from city_distances.common.http import HttpClient, RetryConfig
from city_distances.common.ids import generate_run_id
from city_distances.common.logging import build_logger, log_event
from city_distances.common.store import RestStore
from city_distances.pipeline.compute import run_pipeline
from city_distances.pipeline.reports import summary_lines, write_run_summary


def build_store(config: PipelineConfig) -> RestStore:
    client = HttpClient(retry=RetryConfig(max_attempts=config.max_attempts))
    return RestStore(
        config.store_url,
        config.store_key,
        client,
        distances_table=config.distances_table,
    )


def run_command(
    config: PipelineConfig,
    *,
    run_id: str | None = None,
    store: RestStore | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    run_id = run_id or generate_run_id()
    logger = build_logger(run_id, level=config.log_level)
    owns_store = store is None
    if store is None:
        store = build_store(config)

    log_event(logger, "run start", run_id=run_id, event="RUN_START", status="ok")
    try:
        summary = run_pipeline(config, store, run_id, logger=logger, sleep=sleep)
    except PipelineError as exc:
        log_event(
            logger,
            f"run failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    finally:
        if owns_store:
            store.client.close()

    if summary.status == "nothing_to_do":
        print("Not enough cities with coordinates. Exiting.")
        return EXIT_SUCCESS

    for line in summary_lines(summary):
        print(line)
    if config.summary_path is not None:
        write_run_summary(config.summary_path, summary)
    return EXIT_SUCCESS


def main(environ: Mapping[str, str] | None = None) -> int:
    env = os.environ if environ is None else environ
    try:
        config = load_config(env)
    except PipelineError as exc:
        print(f"Fatal error: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    try:
        return run_command(config)
    except Exception as exc:
        print(f"Fatal error: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
