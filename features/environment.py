"""Behave environment configuration for batchkit features."""

import logging
import shutil
import tempfile

from behave.model import Scenario
from behave.runner import Context

from batchkit.runtime import Runtime, set_default_runtime

logger = logging.getLogger(__name__)


class LogCapture(logging.Handler):
    """Custom logging handler for capturing log records in tests."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Setup executed before each scenario."""
    context.tmp_dir = tempfile.mkdtemp(prefix="batchkit-")
    context.runtime = Runtime.create()
    context.published = {}
    context.disposed_names = []

    context.log_capture = LogCapture()
    batchkit_logger = logging.getLogger("batchkit")
    batchkit_logger.addHandler(context.log_capture)
    batchkit_logger.setLevel(logging.DEBUG)

    logger.debug("Starting scenario: %s", scenario.name)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Cleanup executed after each scenario."""
    owner = getattr(context, "owner", None)

    if owner is not None:
        try:
            owner.cleanup_resources()
        except Exception as e:
            logger.warning("Cleanup after scenario %s failed: %s", scenario.name, e)

    logging.getLogger("batchkit").removeHandler(context.log_capture)
    set_default_runtime(None)
    shutil.rmtree(context.tmp_dir, ignore_errors=True)
