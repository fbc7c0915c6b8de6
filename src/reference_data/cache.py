"""
Reference Data Cache

Memoises reference lookups in front of another repository. Entries live until
an admin write calls ``invalidate``; assessments are snapshot computations so
staleness between writes is acceptable.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .hazard_ids import get_canonical_hazard_id
from .models import BusinessType, HazardType, Location, MultiplierRule, Strategy
from .repository import HazardLevel, ReferenceRepository, Vulnerability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CachedReferenceRepository(ReferenceRepository):
    """Caching wrapper keyed by (location, hazard) / (business type, hazard)"""

    def __init__(self, inner: ReferenceRepository):
        self.inner = inner
        self._hazard_levels: Dict[Tuple[Optional[str], str], HazardLevel] = {}
        self._vulnerabilities: Dict[Tuple[str, str], Vulnerability] = {}
        self._multipliers: Dict[str, List[MultiplierRule]] = {}
        self._strategies: Optional[List[Strategy]] = None
        self.hits = 0
        self.misses = 0

    def get_hazard_level(self, location_id: Optional[str], hazard_id: str) -> HazardLevel:
        key = (location_id, get_canonical_hazard_id(hazard_id))
        if key in self._hazard_levels:
            self.hits += 1
        else:
            self.misses += 1
            self._hazard_levels[key] = self.inner.get_hazard_level(*key)
        return self._hazard_levels[key]

    def get_vulnerability(self, business_type_id: str, hazard_id: str) -> Vulnerability:
        key = (business_type_id, get_canonical_hazard_id(hazard_id))
        if key in self._vulnerabilities:
            self.hits += 1
        else:
            self.misses += 1
            self._vulnerabilities[key] = self.inner.get_vulnerability(*key)
        return self._vulnerabilities[key]

    def get_applicable_multipliers(self, hazard_id: str) -> List[MultiplierRule]:
        key = get_canonical_hazard_id(hazard_id)
        if key in self._multipliers:
            self.hits += 1
        else:
            self.misses += 1
            self._multipliers[key] = self.inner.get_applicable_multipliers(key)
        return list(self._multipliers[key])

    def get_active_strategies(self) -> List[Strategy]:
        if self._strategies is None:
            self._strategies = self.inner.get_active_strategies()
        return list(self._strategies)

    def get_known_hazards(
        self, location_id: Optional[str], business_type_id: Optional[str]
    ) -> List[str]:
        return self.inner.get_known_hazards(location_id, business_type_id)

    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        return self.inner.get_location(location_id)

    def get_business_type(self, business_type_id: str) -> Optional[BusinessType]:
        return self.inner.get_business_type(business_type_id)

    def get_hazard_name(self, hazard_id: str) -> str:
        return self.inner.get_hazard_name(hazard_id)

    def get_hazard_type(self, hazard_id: str) -> Optional[HazardType]:
        return self.inner.get_hazard_type(hazard_id)

    def invalidate(self) -> None:
        """Drop every cached entry (called after an admin write)"""
        logger.info(
            f"Invalidating reference cache ({self.hits} hits, {self.misses} misses)"
        )
        self._hazard_levels.clear()
        self._vulnerabilities.clear()
        self._multipliers.clear()
        self._strategies = None
