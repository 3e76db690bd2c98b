from __future__ import annotations

import sys

from loguru import logger

from secret_santa.core.config import load_settings
from secret_santa.core.logging import setup_logging
from secret_santa.db import get_session, init_engine
from secret_santa.services import draw
from secret_santa.services.assignment import get_assignment_stats


def run() -> int:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)
    init_engine(settings.database_url)

    logger.info("draw starting...")
    try:
        with get_session() as session:
            generated = draw.generate_list(session, settings)
    except draw.DrawError as exc:
        logger.error("Draw failed: {error}", error=str(exc))
        return 1

    stats = get_assignment_stats(generated.assignments, generated.participants, generated.groups)
    logger.info("List      - {id}", id=generated.id)
    logger.info("Seed      - {seed}", seed=generated.seed)
    logger.info("Attempts  - {attempts}", attempts=generated.attempts)
    logger.info("Givers    - {total}", total=stats.total_assignments)
    logger.info("In groups - {count}", count=stats.participants_with_groups)
    logger.info("draw finished")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
