"""Shared fixtures for the trial lookup tests."""

import pytest

from factories import create_empty_bundle, create_example_trial
from trial_lookup.domain.code_tables import CodeTable, CodeTables


@pytest.fixture
def example_trial():
    return create_example_trial()


@pytest.fixture
def empty_bundle():
    return create_empty_bundle()


@pytest.fixture
def code_tables():
    """Small in-memory code tables that apply to any coding system."""
    return CodeTables(
        medication=CodeTable.from_mapping({"AAA": "111"}, name="medication"),
        staging=CodeTable.from_mapping({"BBB": "222"}, name="staging"),
    )
