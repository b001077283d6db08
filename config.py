"""
config.py
Settings read from the environment (and a local .env file), plus logging setup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DB_FILE = Path(os.getenv("DOJO_DB_FILE", str(Path(__file__).with_name("dojo.db"))))

LOG_LEVEL = os.getenv("DOJO_LOG_LEVEL", "INFO").upper()

DEFAULT_ADMIN_PASSWORD = os.getenv("DOJO_DEFAULT_ADMIN_PASSWORD", "admin123")

# Minutes before a class starts when self check-in opens
EARLY_CHECKIN_MINUTES = int(os.getenv("DOJO_EARLY_CHECKIN_MINUTES", "60"))

# Days generated forward (today included) and backward for the member schedule
HORIZON_DAYS = int(os.getenv("DOJO_HORIZON_DAYS", "28"))

_logging_ready = False


def setup_logging() -> None:
    global _logging_ready
    if _logging_ready:
        return
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_ready = True
