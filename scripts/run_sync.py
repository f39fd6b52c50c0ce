"""
Run domain syncs (and optionally log retention cleanup) from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os

from app.services.log_buffer import get_log_buffer
from app.services.sync_domains import get_domain_registry
from app.services.sync_orchestrator import get_sync_orchestrator


def main() -> int:
    parser = argparse.ArgumentParser(description="Run fan-out domain synchronization.")
    parser.add_argument(
        "--domain",
        dest="domains",
        action="append",
        default=None,
        help="Domain to sync. Repeat for several; defaults to every enabled domain.",
    )
    parser.add_argument(
        "--cleanup-days",
        dest="cleanup_days",
        type=int,
        default=None,
        help="After syncing, delete execution log entries older than this many days.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.cleanup_days is not None and args.cleanup_days < 1:
        parser.error("--cleanup-days must be at least 1")

    registry = get_domain_registry()
    try:
        configs = [registry.get(name) for name in args.domains] if args.domains else registry.all()
    except ValueError as exc:
        parser.error(str(exc))

    orchestrator = get_sync_orchestrator()
    log_buffer = get_log_buffer()

    results = []
    for config in configs:
        result = orchestrator.run_sync(config)
        log_buffer.flush()
        results.append(result)

    payload: dict[str, object] = {
        "results": [
            {
                "domain": result.domain,
                "status": result.status.value,
                "record_counts": dict(result.record_counts),
                "total_records": result.total_records,
                "total_duration_ms": result.total_duration_ms,
                "error_message": result.error_message,
            }
            for result in results
        ]
    }
    if args.cleanup_days is not None:
        payload["log_cleanup"] = {
            "retention_days": args.cleanup_days,
            "deleted_entries": log_buffer.cleanup_older_than(args.cleanup_days),
        }

    print(json.dumps(payload, indent=2))
    return 0 if all(result.succeeded for result in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
