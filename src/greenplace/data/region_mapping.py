# src/greenplace/data/region_mapping.py

"""
Mapping table between cloud provider regions and the canonical regions the
engine keys its carbon data on. Each row also carries the Electricity Maps
zone covering the region, which the metered provider needs for its queries.

Sources:
- GCP: https://cloud.google.com/about/locations
- AWS: https://aws.amazon.com/about-aws/global-infrastructure/
- Azure: https://azure.microsoft.com/en-us/explore/global-infrastructure/regions/
- OVHcloud: https://www.ovhcloud.com/en/about-us/global-infrastructure/regions/
- Scaleway: https://www.scaleway.com/en/docs/account/reference-content/products-availability/
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from greenplace.models.region_mapping import RegionMapping

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_FILE = Path(__file__).parent / "cloud_region_mapping.csv"


def load_region_mappings(mapping_file: Optional[str] = None) -> Dict[Tuple[str, str], RegionMapping]:
    """
    Load region mappings from CSV using Pydantic for validation.

    Provider keys are lower-cased; region ids keep their case except for the
    lookup key, which is lower-cased too so 'GRA7' and 'gra7' resolve alike.

    Returns:
        Dict[(provider, region_id_lower), RegionMapping]. Empty when the file
        is missing or unreadable.
    """
    path = Path(mapping_file) if mapping_file else DEFAULT_MAPPING_FILE
    mappings: Dict[Tuple[str, str], RegionMapping] = {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                try:
                    mapping = RegionMapping(**{k: (v or "").strip() or None for k, v in row.items() if k})
                except (ValidationError, TypeError) as e:
                    logger.warning(f"Skipping invalid row in region mapping CSV: {row} - Error: {e}")
                    continue

                mapping = mapping.model_copy(update={"cloud_provider": mapping.cloud_provider.lower()})
                key = (mapping.cloud_provider, mapping.region_id.lower())
                if key in mappings:
                    logger.warning("Duplicate region mapping for %s/%s; keeping the last row", *key)
                mappings[key] = mapping

        logger.info(f"Loaded {len(mappings)} region mappings from {path}")
        return mappings

    except FileNotFoundError:
        logger.error(f"Region mapping file not found: {path}")
        return {}
    except OSError as e:
        logger.error(f"Unexpected error loading region mappings from {path}: {e}")
        return {}
