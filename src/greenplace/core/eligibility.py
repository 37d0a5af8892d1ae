# src/greenplace/core/eligibility.py
"""
Interprets the carbon-aware annotation that the controller propagates onto
non-critical replicas. Only 'enabled' opts a workload in.
"""

import logging
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

CARBON_AWARE_ANNOTATION = "greenplace.io/carbon-aware"
ENABLED = "enabled"
DISABLED = "disabled"


def is_carbon_aware(annotations: Optional[Mapping[str, str]]) -> bool:
    value = (annotations or {}).get(CARBON_AWARE_ANNOTATION)
    if value is None:
        return False

    normalized = str(value).strip().lower()
    if normalized == ENABLED:
        return True
    if normalized != DISABLED:
        logger.warning(
            "Unrecognised value '%s' for annotation %s; treating workload as not carbon-aware",
            value,
            CARBON_AWARE_ANNOTATION,
        )
    return False
