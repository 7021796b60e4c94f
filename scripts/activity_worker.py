from __future__ import annotations

from arq import run_worker

from courier.core.logging import configure_logging
from courier.workers.activity_worker import WorkerSettings


def main() -> None:
    # Configure logging before the worker boots so arq and activity lines share one format.
    configure_logging()
    run_worker(WorkerSettings)


if __name__ == "__main__":
    main()
