"""
Theta: change in value from rolling the valuation date forward.
"""

import logging
from typing import Optional, Sequence, Union

from ficcrisk.config import ScenarioConfig
from ficcrisk.errors import ConfigurationError
from ficcrisk.sensitivity.results import ScenarioResult

from .composer import ScenarioComposer
from .shifts import DateRollShift

logger = logging.getLogger(__name__)


def theta(
    pricers: Sequence,
    roll: Union[int, str] = 1,
    measures: Union[str, Sequence[str], None] = None,
    config: Optional[ScenarioConfig] = None,
) -> ScenarioResult:
    """
    Revalue pricers with their as-of date rolled forward.

    Curves are left as they are; only the pricers age. As-of dates are
    restored afterwards.

    Args:
        pricers: Pricers or evaluators
        roll: Days (a positive integer) or a tenor such as "1W" or "1M"
        measures: Measure name(s); the configured measures when None
        config: Scenario configuration

    Returns:
        ScenarioResult whose deltas are the theta per pricer

    Raises:
        ConfigurationError: If the roll is not a positive day count or a tenor
    """
    if isinstance(roll, int) and not isinstance(roll, bool) and roll <= 0:
        raise ConfigurationError(f"Theta roll must be a positive number of days, got {roll}")
    logger.info("Computing theta over %s for %d pricers", roll, len(pricers))
    return ScenarioComposer(config).run(pricers, [DateRollShift(roll)], measures)
