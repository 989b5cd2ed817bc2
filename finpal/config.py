"""Environment-driven configuration for FinPal.

Everything that varies between installs is read here so the rest of the code
never touches ``os.environ`` directly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from os import getenv
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

BUDGET_WINDOWS = ("all", "month")


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings.

    Attributes:
        data_file: JSON document holding every stored collection.
        currency: Label used in notification bodies and reports.
        budget_window: ``"all"`` sums every expense ever recorded against a
            budget, ``"month"`` only those from the first of the current month.
        log_level: Name of the root logging level set by the host app.
    """

    data_file: Path
    currency: str = "KSH"
    budget_window: str = "all"
    log_level: str = "INFO"

    def budget_since(self, today: date) -> Optional[date]:
        if self.budget_window == "month":
            return today.replace(day=1)
        return None


def load_config() -> AppConfig:
    project_root = Path(__file__).resolve().parent.parent
    budget_window = getenv("FINPAL_BUDGET_WINDOW", "all").strip().lower()
    if budget_window not in BUDGET_WINDOWS:
        logging.getLogger(__name__).warning(
            "Unknown FINPAL_BUDGET_WINDOW %r, falling back to 'all'", budget_window
        )
        budget_window = "all"

    return AppConfig(
        data_file=Path(getenv("FINPAL_DATA_FILE", str(project_root / "data" / "finpal.json"))),
        currency=getenv("FINPAL_CURRENCY", "KSH"),
        budget_window=budget_window,
        log_level=getenv("FINPAL_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
