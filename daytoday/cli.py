import logging
import os
import sys
from pathlib import Path

import fncli

from . import db
from .core.errors import DayToDayError


def _configure_logging() -> None:
    level = os.environ.get("DAYTODAY_LOG", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def main():
    _configure_logging()
    db.init()
    fncli.autodiscover(Path(__file__).parent, "daytoday")

    user_args = sys.argv[1:]
    if not user_args:
        user_args = ["day"]
    argv = ["daytoday", *user_args]
    try:
        code = fncli.dispatch(argv)
    except DayToDayError as e:
        sys.stderr.write(f"{e}\n")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
