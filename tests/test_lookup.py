"""Tests for the lookup factory and the generated matcher."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from factories import ENDPOINT, create_empty_bundle, create_example_trial, mock_client
from trial_lookup import APIError, ConfigurationError, create_clinical_trial_lookup
from trial_lookup.adapters.cache import MemoryCache
from trial_lookup.adapters.registry import ClinicalTrialsGovRegistry
from trial_lookup.domain.ports import NullCache, NullRegistry, RegistryPort
from trial_lookup.domain.research_study import SNOMED_SYSTEM, RegistryStudy, SearchSet
from trial_lookup.domain.services import merge_registry_study
from trial_lookup.lookup import build_lookup


class FixedRegistry(RegistryPort):
    """Registry that knows a single trial."""

    record = RegistryStudy(
        nct_id="NCT12345678",
        brief_title="title",
        lead_sponsor="Example Agency",
        overall_status="Recruiting",
    )

    async def update_research_studies(self, studies):
        return [
            merge_registry_study(study, self.record) if study.id == self.record.nct_id else study
            for study in studies
        ]


class TestCreateClinicalTrialLookup:
    """Test suite for the lookup factory."""

    def test_missing_endpoint(self):
        with pytest.raises(ConfigurationError, match="Missing API_ENDPOINT in configuration") as exc_info:
            create_clinical_trial_lookup({}, NullRegistry())
        assert exc_info.value.field == "endpoint"

    def test_none_config(self):
        with pytest.raises(ConfigurationError, match="Missing API_ENDPOINT"):
            create_clinical_trial_lookup(None)

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            create_clinical_trial_lookup({"api_endpoint": "not a url"})
        with pytest.raises(ConfigurationError):
            create_clinical_trial_lookup("http://www.example.com/")

    def test_creates_a_callable(self):
        matcher = create_clinical_trial_lookup({"api_endpoint": "http://www.example.com/"}, NullRegistry())

        assert callable(matcher)
        assert matcher.endpoint == "http://www.example.com/"

    def test_optional_collaborators_default_to_null(self):
        matcher = create_clinical_trial_lookup({"api_endpoint": ENDPOINT})

        assert isinstance(matcher.registry, NullRegistry)
        assert isinstance(matcher.cache, NullCache)
        assert not matcher.code_tables_loaded

    def test_build_lookup_uses_configuration(self):
        matcher = build_lookup({"api_endpoint": ENDPOINT, "cache_ttl": 60})
        assert isinstance(matcher.registry, ClinicalTrialsGovRegistry)
        assert isinstance(matcher.cache, MemoryCache)

        matcher = build_lookup({"api_endpoint": ENDPOINT, "registry_enabled": False, "cache_enabled": False})
        assert isinstance(matcher.registry, NullRegistry)
        assert isinstance(matcher.cache, NullCache)


class TestGeneratedMatcher:
    """Test suite for the matcher returned by create_clinical_trial_lookup."""

    def setup_method(self):
        self.requests = []
        self.response = httpx.Response(200, json=[])

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    def create_matcher(self, client, code_tables, registry=None, **kwargs):
        return create_clinical_trial_lookup(
            {"api_endpoint": ENDPOINT},
            registry,
            code_tables=code_tables,
            http_client=client,
            **kwargs
        )

    @pytest.mark.asyncio
    async def test_runs_queries(self, code_tables):
        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables)
            result = await matcher(create_empty_bundle())

        assert isinstance(result, SearchSet)
        assert result.type == "searchset"
        assert result.total == 0
        assert len(self.requests) == 1

    @pytest.mark.asyncio
    async def test_fills_in_missing_data(self, code_tables):
        self.response = httpx.Response(200, json=[create_example_trial()])

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables, FixedRegistry())
            result = await matcher(create_empty_bundle())

        study = result.entry[0].resource
        assert study.resource_type == "ResearchStudy"
        # The endpoint sent a title, so the registry's does not replace it
        assert study.title == "Title"
        assert study.status == "active"
        assert study.sponsor.display == "Example Agency"

    @pytest.mark.asyncio
    async def test_tolerates_null_categories(self, code_tables):
        trial = create_example_trial()
        trial["trialCategories"] = None
        self.response = httpx.Response(200, json=[trial])

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables)
            result = await matcher(create_empty_bundle())

        assert result.total == 1
        assert result.entry[0].resource.id == "NCT12345678"

    @pytest.mark.asyncio
    async def test_defaults_without_registry(self, code_tables):
        self.response = httpx.Response(200, json=[create_example_trial()])

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables)
            result = await matcher(create_empty_bundle())

        study = result.entry[0].resource
        assert study.title == "Title"
        assert study.status == "unknown"
        assert study.sponsor.display == "Unknown"

    @pytest.mark.asyncio
    async def test_registry_failure_still_resolves(self, code_tables):
        self.response = httpx.Response(200, json=[create_example_trial()])
        registry = AsyncMock(spec=RegistryPort)
        registry.update_research_studies.side_effect = RuntimeError("Registry unavailable")

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables, registry)
            result = await matcher(create_empty_bundle())

        assert result.total == 1
        assert result.entry[0].resource.title == "Title"
        registry.update_research_studies.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_registry_results_are_returned(self, code_tables):
        self.response = httpx.Response(200, json=[create_example_trial()])
        registry = AsyncMock(spec=RegistryPort)
        registry.update_research_studies.side_effect = lambda studies: [
            s.model_copy(update={"status": "active"}) for s in studies
        ]

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables, registry)
            result = await matcher(create_empty_bundle())

        assert result.entry[0].resource.status == "active"

    @pytest.mark.asyncio
    async def test_api_errors_propagate(self, code_tables):
        self.response = httpx.Response(500, text="Server error")

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables)
            with pytest.raises(APIError) as exc_info:
                await matcher(create_empty_bundle())

        assert exc_info.value.error_type == "status"

    @pytest.mark.asyncio
    async def test_sends_mapped_codes_and_options(self, code_tables):
        bundle = create_empty_bundle()
        bundle["entry"].append({
            "resource": {
                "resourceType": "MedicationStatement",
                "medicationCodeableConcept": {"coding": [{"code": "AAA"}]},
            }
        })
        bundle["entry"].append({
            "resource": {
                "resourceType": "Condition",
                "stage": [{"summary": {"coding": [{"code": "BBB"}]}}],
            }
        })

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables)
            await matcher(bundle, {"zipCode": "01780"})

        sent = json.loads(self.requests[0].content)
        medication = sent["entry"][0]["resource"]["medicationCodeableConcept"]
        stage = sent["entry"][1]["resource"]["stage"][0]["summary"]
        assert medication["coding"] == [{"system": SNOMED_SYSTEM, "code": "111"}]
        assert stage["coding"] == [{"system": SNOMED_SYSTEM, "code": "222"}]
        assert sent["entry"][2]["resource"]["parameter"] == [{"name": "zipCode", "valueString": "01780"}]
        # The caller's bundle is untouched
        assert bundle["entry"][0]["resource"]["medicationCodeableConcept"]["coding"] == [{"code": "AAA"}]

    @pytest.mark.asyncio
    async def test_repeated_queries_use_cache(self, code_tables):
        self.response = httpx.Response(200, json=[create_example_trial()])

        async with mock_client(self.handler) as client:
            matcher = self.create_matcher(client, code_tables, cache=MemoryCache())
            first = await matcher(create_empty_bundle())
            second = await matcher(create_empty_bundle())

        assert len(self.requests) == 1
        assert second == first
