"""
Worker loop that runs queued automation executions.
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import List, Optional

from models.base import LLMProvider
from pinnlo.automation import run_execution
from pinnlo.config import get_settings
from pinnlo.db import DbClient
from pinnlo.dependencies import (
    get_db_client,
    get_mcp_client,
    get_openai_provider,
    get_queue_client,
)
from pinnlo.mcp_client import McpClient
from pinnlo.queue import JobQueue
from shared.types import ExecutionStatus

logger = logging.getLogger(__name__)


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    mcp: Optional[McpClient] = None,
    llm: Optional[LLMProvider] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Take one id off the queue and run its execution.

    Returns False only when the queue had nothing to hand out. Ids with no
    execution record, or whose execution is no longer queued, are logged,
    acknowledged and count as handled so a drain keeps going past them.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()

    execution_id = queue.dequeue(block=block, timeout=timeout)
    if not execution_id:
        return False

    try:
        execution = db.get_execution(execution_id)
        if not execution:
            logger.warning(
                "Received execution_id %s from queue but no DB record found", execution_id
            )
        elif execution.status != ExecutionStatus.QUEUED:
            logger.warning(
                "Skipping execution %s in status %s", execution_id, execution.status
            )
        else:
            run_execution(
                execution,
                db,
                mcp or get_mcp_client(),
                llm or get_openai_provider(),
            )
    finally:
        queue.ack(execution_id)
    return True


def recover_interrupted(db: DbClient, queue: JobQueue) -> List[str]:
    """
    Put back executions a dead worker claimed but never acknowledged.

    Executions left running by that worker go back to queued so they run
    again; anything already finished is skipped when it comes round.
    """
    recovered = queue.recover()
    for execution_id in recovered:
        execution = db.get_execution(execution_id)
        if execution and execution.status == ExecutionStatus.RUNNING:
            db.update_execution(execution_id, {"status": ExecutionStatus.QUEUED.value})
            logger.info("Requeued interrupted execution %s", execution_id)
    return recovered


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Block on the queue forever. Intended to be run under systemd/supervisor.
    """
    db = get_db_client()
    queue = get_queue_client()
    while True:
        processed = process_next(
            db=db, queue=queue, block=True, timeout=max(1, int(poll_interval_seconds))
        )
        if not processed:
            time.sleep(poll_interval_seconds)


def drain(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    mcp: Optional[McpClient] = None,
    llm: Optional[LLMProvider] = None,
) -> int:
    """Handle every id currently queued, then return how many were taken."""
    count = 0
    while process_next(db=db, queue=queue, mcp=mcp, llm=llm, block=False):
        count += 1
    return count


def main() -> int:
    parser = argparse.ArgumentParser(description="Run PINNLO automation executions.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain the queue and exit instead of polling forever.",
    )
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Requeue executions claimed by a worker that exited mid-run. "
        "Only use when no other worker is running.",
    )
    parser.add_argument("--poll-interval", type=float, default=2.0)
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper())
    if args.recover:
        recovered = recover_interrupted(get_db_client(), get_queue_client())
        logger.info("Recovered %d executions", len(recovered))
    if args.once:
        logger.info("Handled %d queued ids", drain())
        return 0
    run_loop(args.poll_interval)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
