from __future__ import annotations

import asyncio

from arq.worker import run_worker

from app.core.logging import configure_logging
from app.workers.arq_worker import WorkerSettings


def main() -> None:
    configure_logging()
    # arq looks up the loop via asyncio.get_event_loop(), which no longer creates one on 3.14.
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    run_worker(WorkerSettings)


if __name__ == "__main__":
    main()
