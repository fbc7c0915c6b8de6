"""
Admin Reference Data Connector

Fetches the reference data needed for one assessment from the admin service
in a single batched request. Any failure (timeout, HTTP error, bad payload)
yields an empty dataset so lookups fall back to the estimated defaults.
"""

import logging
import os
from typing import Iterable, Optional

import requests

from .models import ReferenceDataset
from .repository import InMemoryReferenceRepository, dataset_from_records

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AdminReferenceConnector:
    """Connector for the admin reference data API"""

    BUNDLE_PATH = "/api/v1/reference/bundle"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize admin connector

        Args:
            base_url: Admin API root. Defaults to REFERENCE_API_URL.
            timeout: Request timeout in seconds. Defaults to REFERENCE_API_TIMEOUT or 10.
        """
        self.base_url = (
            base_url or os.getenv("REFERENCE_API_URL", "http://localhost:3000")
        ).rstrip("/")
        self.timeout = timeout if timeout is not None else float(
            os.getenv("REFERENCE_API_TIMEOUT", "10")
        )
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def fetch_bundle(
        self,
        location_id: Optional[str],
        business_type_id: str,
        hazard_ids: Optional[Iterable[str]] = None,
    ) -> ReferenceDataset:
        """
        Fetch all profiles, multipliers and strategies for one assessment

        Returns:
            ReferenceDataset (empty if the admin service could not be reached)
        """
        params = {"businessType": business_type_id}
        if location_id:
            params["location"] = location_id
        if hazard_ids:
            params["hazards"] = ",".join(hazard_ids)

        try:
            logger.info(f"Fetching reference bundle (params: {params})")
            response = self.session.get(
                f"{self.base_url}{self.BUNDLE_PATH}", params=params, timeout=self.timeout
            )
            response.raise_for_status()
            return dataset_from_records(response.json())
        except requests.exceptions.Timeout:
            logger.error(
                f"Reference data request timed out after {self.timeout}s - using estimated defaults"
            )
            return ReferenceDataset()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching reference data: {e} - using estimated defaults")
            return ReferenceDataset()
        except (ValueError, TypeError, AttributeError) as e:
            # ValueError covers undecodable JSON and pydantic ValidationError
            logger.error(f"Invalid reference data payload: {e} - using estimated defaults")
            return ReferenceDataset()

    def get_repository(
        self,
        location_id: Optional[str],
        business_type_id: str,
        hazard_ids: Optional[Iterable[str]] = None,
    ) -> InMemoryReferenceRepository:
        """Repository over a freshly fetched bundle"""
        return InMemoryReferenceRepository(
            self.fetch_bundle(location_id, business_type_id, hazard_ids)
        )
