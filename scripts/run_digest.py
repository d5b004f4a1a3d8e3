#!/usr/bin/env python3
"""Run open connections digest jobs from the command line.

Usage:
    python scripts/run_digest.py --list
    python scripts/run_digest.py --job-id 3
    python scripts/run_digest.py --serve      # cron scheduler, foreground

Exit code is 0 on success, 1 when the run failed (configuration error or
recipient errors). The job row's last status is updated either way.
"""

import argparse
import os
import sys
import time

# Must set up path before package imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pydantic import ValidationError

from connections_digest.database import SessionLocal
from connections_digest.exceptions import DigestError
from connections_digest.logging_config import setup_logging
from connections_digest.models import ServiceJob
from connections_digest.scheduler import (
    JOB_CLASS,
    execute_service_job,
    shutdown_scheduler,
    start_scheduler,
)


def list_jobs() -> None:
    db = SessionLocal()
    try:
        jobs = db.query(ServiceJob).filter(ServiceJob.job_class == JOB_CLASS).order_by(ServiceJob.id)
        for job in jobs:
            state = "active" if job.is_active else "inactive"
            last = job.last_successful_run_at.isoformat() if job.last_successful_run_at else "never"
            print(f"{job.id:>4}  {job.name:<40} {job.cron_expression or '':<15} {state:<8} last ok: {last}")
    finally:
        db.close()


def serve() -> None:
    start_scheduler()
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        pass
    finally:
        shutdown_scheduler()


def main():
    parser = argparse.ArgumentParser(description="Open connections digest — manual run")
    parser.add_argument("--job-id", type=int, help="ServiceJob id to run")
    parser.add_argument("--list", action="store_true", help="List configured digest jobs")
    parser.add_argument("--serve", action="store_true", help="Run the cron scheduler until interrupted")
    args = parser.parse_args()

    setup_logging()

    if args.list:
        list_jobs()
        return

    if args.serve:
        serve()
        return

    if args.job_id is None:
        parser.error("--job-id is required unless --list or --serve is given")

    try:
        result = execute_service_job(args.job_id)
    except (DigestError, ValidationError) as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if result is None:
        print(f"Job {args.job_id} was not run (missing or already running).", file=sys.stderr)
        sys.exit(1)
    print(result.summary(), end="")


if __name__ == "__main__":
    main()
