"""
Main entrypoint: run toxic flow detection on a feed and print or write the report.

Same arguments as toxicflow.tools.run_detection, e.g.:

  python main.py data/feed.csv --output report.json

Env: TOXICFLOW_FEED_PATH, TOXICFLOW_REPORT_PATH, TOXICFLOW_PARALLEL, TOXICFLOW_<FIELD> threshold overrides.
"""

import sys

# Configure structured JSON logging before other imports that may log
from toxicflow.flow_logging import get_logger

logger = get_logger("main")


def main() -> None:
    from toxicflow.tools.run_detection import main as run_detection_main

    logger.info("toxicflow_start")
    code = run_detection_main(sys.argv[1:])
    if code != 0:
        logger.error("toxicflow_exit", code=code)
    sys.exit(code)


if __name__ == "__main__":
    main()
