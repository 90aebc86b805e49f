"""ClinicalTrials.gov registry adapter.

Implements the RegistryPort against the ClinicalTrials.gov API v2. Studies are
fetched in batches by NCT identifier and merged into the translated
ResearchStudy resources.

Errors (transport, HTTP status, malformed JSON) are raised to the caller; the
enrichment service treats them as a signal to skip enrichment.
"""

import logging
import re
from typing import Any, Optional

import httpx

from trial_lookup.domain.ports import RegistryPort
from trial_lookup.domain.research_study import RegistryStudy, ResearchStudy
from trial_lookup.domain.services.study_enricher import merge_registry_study

logger = logging.getLogger(__name__)

CLINICAL_TRIALS_API_URL = "https://clinicaltrials.gov/api/v2"
DEFAULT_TIMEOUT = 10.0
MAX_NCT_IDS_PER_REQUEST = 100

NCT_ID_PATTERN = re.compile(r"^NCT\d{8}$")

REQUESTED_FIELDS = (
    "NCTId,BriefTitle,OfficialTitle,LeadSponsorName,OverallStatus,"
    "BriefSummary,Condition,Phase"
)


def parse_registry_study(study: dict[str, Any]) -> Optional[RegistryStudy]:
    """Parse a single API v2 study into a RegistryStudy.

    Returns:
        RegistryStudy, or None if the study has no NCT identifier
    """
    protocol_section = study.get("protocolSection", {})

    identification = protocol_section.get("identificationModule", {})
    nct_id = identification.get("nctId")
    if not nct_id:
        return None

    status_module = protocol_section.get("statusModule", {})
    sponsor_module = protocol_section.get("sponsorCollaboratorsModule", {})
    description_module = protocol_section.get("descriptionModule", {})
    conditions_module = protocol_section.get("conditionsModule", {})
    design_module = protocol_section.get("designModule", {})

    return RegistryStudy(
        nct_id=nct_id,
        brief_title=identification.get("briefTitle"),
        official_title=identification.get("officialTitle"),
        lead_sponsor=sponsor_module.get("leadSponsor", {}).get("name"),
        overall_status=status_module.get("overallStatus"),
        brief_summary=description_module.get("briefSummary"),
        conditions=conditions_module.get("conditions", []),
        phases=design_module.get("phases", []),
    )


def parse_batch_response(data: dict[str, Any]) -> dict[str, RegistryStudy]:
    """Parse a batch API response into a dict mapping NCT ID to RegistryStudy."""
    results = {}
    for study in data.get("studies", []):
        parsed = parse_registry_study(study)
        if parsed:
            results[parsed.nct_id] = parsed
    return results


class ClinicalTrialsGovRegistry(RegistryPort):
    """Registry client backed by the ClinicalTrials.gov API v2.

    Example Usage:
        ```python
        registry = ClinicalTrialsGovRegistry()
        enriched = await registry.update_research_studies(studies)
        ```
    """

    def __init__(
        self,
        base_url: str = CLINICAL_TRIALS_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        batch_size: int = MAX_NCT_IDS_PER_REQUEST
    ):
        """Initialize ClinicalTrialsGovRegistry.

        Parameters:
            base_url: API v2 base URL
            timeout: Request timeout in seconds (short-lived clients only)
            client: Shared HTTP client (a short-lived one is used per batch if omitted)
            batch_size: Maximum NCT IDs per request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.batch_size = min(batch_size, MAX_NCT_IDS_PER_REQUEST)
        self._client = client

    async def _fetch_batch(self, client: httpx.AsyncClient, nct_ids: list[str]) -> dict[str, RegistryStudy]:
        params = {
            "filter.ids": ",".join(nct_ids),
            "fields": REQUESTED_FIELDS,
            "format": "json",
            "pageSize": len(nct_ids),
        }
        response = await client.get(f"{self.base_url}/studies", params=params)
        response.raise_for_status()
        return parse_batch_response(response.json())

    async def fetch_studies(self, nct_ids: list[str]) -> dict[str, RegistryStudy]:
        """Fetch registry records for the given NCT IDs.

        Invalid identifiers are skipped. Duplicate identifiers are fetched once.
        """
        clean_ids = []
        for nct_id in nct_ids:
            nct_id = (nct_id or "").strip().upper()
            if NCT_ID_PATTERN.match(nct_id) and nct_id not in clean_ids:
                clean_ids.append(nct_id)
            else:
                logger.debug(f"Skipping registry lookup for identifier: {nct_id!r}")
        if not clean_ids:
            return {}

        results: dict[str, RegistryStudy] = {}
        batches = [clean_ids[i:i + self.batch_size] for i in range(0, len(clean_ids), self.batch_size)]
        if self._client is not None:
            for batch in batches:
                results.update(await self._fetch_batch(self._client, batch))
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                for batch in batches:
                    results.update(await self._fetch_batch(client, batch))

        logger.info(f"Fetched {len(results)}/{len(clean_ids)} studies from ClinicalTrials.gov")
        return results

    async def update_research_studies(self, studies: list[ResearchStudy]) -> list[ResearchStudy]:
        if not studies:
            return studies

        nct_ids = [study.identifier[0].value.strip().upper() if study.identifier else "" for study in studies]
        registry_studies = await self.fetch_studies(nct_ids)

        updated = []
        for study, nct_id in zip(studies, nct_ids):
            registry_study = registry_studies.get(nct_id)
            updated.append(merge_registry_study(study, registry_study) if registry_study else study)
        return updated
