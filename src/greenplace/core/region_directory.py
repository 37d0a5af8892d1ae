# src/greenplace/core/region_directory.py

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..data.region_mapping import load_region_mappings
from ..models.region_mapping import RegionMapping
from .exceptions import UnknownTopology

logger = logging.getLogger(__name__)

PROVIDER_LABEL = "greenplace.io/cloud-provider"
REGION_LABELS = ("topology.kubernetes.io/region", "failure-domain.beta.kubernetes.io/region")
ZONE_LABELS = ("topology.kubernetes.io/zone", "failure-domain.beta.kubernetes.io/zone")

# Label prefixes that identify a managed Kubernetes offering.
VENDOR_LABEL_PREFIXES = (
    ("k8s.ovh.net/", "ovh"),
    ("kubernetes.azure.com/", "azure"),
    ("eks.amazonaws.com/", "aws"),
    ("cloud.google.com/", "gcp"),
    ("k8s.scaleway.com/", "scaleway"),
)


def detect_cloud_provider(labels: Mapping[str, str]) -> Optional[str]:
    """
    Detect the cloud provider from node labels. An explicit
    `greenplace.io/cloud-provider` label always wins.
    """
    explicit = labels.get(PROVIDER_LABEL)
    if explicit:
        return explicit.strip().lower()

    for prefix, vendor in VENDOR_LABEL_PREFIXES:
        if any(key.startswith(prefix) for key in labels):
            return vendor

    # Self-managed AWS nodes often only carry the standard labels.
    region = _first_label(labels, REGION_LABELS) or ""
    if "node.kubernetes.io/instance-type" in labels and region.startswith(("us-", "eu-", "ap-", "ca-", "sa-")):
        return "aws"
    return None


def region_candidates_from_zone(zone: str) -> List[str]:
    """
    Derive possible region ids from a zone string, most specific first.

    - GCP style: europe-west9-a -> europe-west9
    - AWS style: us-east-1a -> us-east-1
    - Scaleway style: fr-par-1 -> fr-par
    - OVH zones are already regions: GRA7 -> GRA7
    """
    candidates = [zone]
    parts = zone.split("-")
    if len(parts) > 2 and parts[-1].isalpha() and len(parts[-1]) == 1:
        candidates.append("-".join(parts[:-1]))
    if len(zone) > 2 and zone[-1].isalpha() and zone[-2].isdigit():
        candidates.append(zone[:-1])
    if len(parts) > 1 and parts[-1].isdigit():
        candidates.append("-".join(parts[:-1]))
    return candidates


def _first_label(labels: Mapping[str, str], keys: Tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = labels.get(key)
        if value:
            return value.strip()
    return None


class RegionDirectory:
    """
    Deterministic lookup from node topology labels to canonical regions.

    Unknown or missing labels are reported as UnknownTopology rather than
    guessed, so callers decide their own fallback.
    """

    def __init__(self, mappings: Optional[Dict[Tuple[str, str], RegionMapping]] = None):
        if mappings is None:
            mappings = load_region_mappings()
        self._by_key: Dict[Tuple[str, str], RegionMapping] = {}
        self._by_region: Dict[str, RegionMapping] = {}
        for mapping in mappings.values():
            self._by_key[(mapping.cloud_provider.lower(), mapping.region_id.lower())] = mapping
            self._by_region[mapping.canonical_region] = mapping

    @classmethod
    def from_file(cls, mapping_file: Optional[str] = None) -> "RegionDirectory":
        return cls(load_region_mappings(mapping_file))

    def resolve(self, labels: Mapping[str, str]) -> str:
        """Return the canonical region for a node's labels or raise UnknownTopology."""
        labels = labels or {}
        vendor = detect_cloud_provider(labels)
        if not vendor:
            raise UnknownTopology("Could not detect the cloud provider from node labels", labels)

        region_label = _first_label(labels, REGION_LABELS)
        zone_label = _first_label(labels, ZONE_LABELS)
        if not region_label and not zone_label:
            raise UnknownTopology("Node labels carry neither a region nor a zone", labels)

        candidates = [region_label] if region_label else []
        if zone_label:
            candidates.extend(region_candidates_from_zone(zone_label))
        for candidate in candidates:
            mapping = self._by_key.get((vendor, candidate.lower()))
            if mapping:
                logger.debug("Resolved %s/%s to region '%s'", vendor, candidate, mapping.canonical_region)
                return mapping.canonical_region

        raise UnknownTopology(
            f"No region mapping for provider '{vendor}' and topology '{region_label or zone_label}'",
            labels,
        )

    def known_regions(self) -> List[str]:
        return sorted(self._by_region)

    def describe(self, region: str) -> Optional[RegionMapping]:
        return self._by_region.get(region)

    def zone_for(self, region: str) -> Optional[str]:
        """Electricity Maps zone code covering a canonical region."""
        mapping = self._by_region.get(region)
        return mapping.electricity_maps_zone if mapping else None

    def __contains__(self, region: str) -> bool:
        return region in self._by_region

    def __len__(self) -> int:
        return len(self._by_region)
