import logging

import pytest

from fsha.reporting import base as reporting_base
from fsha.reporting import set_verbosity


@pytest.fixture(autouse=True)
def _reset_fsha_logging():
    """CLI runs install a reporter handler bound to the captured stderr."""
    yield
    logger = logging.getLogger("fsha")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    reporting_base._ACTIVE_REPORTER = None
    set_verbosity(0)
