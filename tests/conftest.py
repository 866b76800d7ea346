"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides an in-memory data source, catalog trees, and API client fixtures.

==============================================================================
"""

import asyncio
from typing import Dict, Generator, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from shipscores.catalog import CatalogTree, DetailRow, LinerRecord, ShipRecord
from shipscores.config import Settings
from shipscores.main import Application
from shipscores.sources import DataSource, SourceError


# ============================================================================
# FAKE DATA SOURCE
# ============================================================================

class FakeSource(DataSource):
    """
    In-memory data source.

    - ``failing`` ship ids raise SourceError from fetch_details
    - ``hold(ship_id)`` keeps that ship's fetch in flight until the
      returned event is set
    - ``calls`` records every fetch_details invocation
    """

    name = "fake"

    def __init__(
        self,
        liners: Iterable[LinerRecord],
        details: Optional[Dict[str, List[dict]]] = None,
        failing: Iterable[str] = ()
    ):
        self.liners = list(liners)
        self.details = details or {}
        self.failing = set(failing)
        self.fail_catalog = False
        self.calls: List[str] = []
        self.catalog_calls = 0
        self.closed = False
        self._gates: Dict[str, asyncio.Event] = {}

    def hold(self, ship_id: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[ship_id] = gate
        return gate

    async def fetch_catalog(self) -> List[LinerRecord]:
        self.catalog_calls += 1
        if self.fail_catalog:
            raise SourceError("catalog service unavailable")
        return [liner.model_copy(deep=True) for liner in self.liners]

    async def fetch_details(self, ship_id: str) -> List[DetailRow]:
        self.calls.append(ship_id)
        gate = self._gates.get(ship_id)
        if gate is not None:
            await gate.wait()
        if ship_id in self.failing:
            raise SourceError(f"details unavailable for {ship_id}")
        return [DetailRow.model_validate(row) for row in self.details.get(ship_id, [])]

    async def close(self) -> None:
        self.closed = True


def make_liners(layout: Dict[str, List[str]]) -> List[LinerRecord]:
    """Build liner records from {liner name: [ship name, ...]}; ship ids are lowercased names."""
    return [
        LinerRecord(
            name=liner_name,
            ships=[ShipRecord(id=name.replace(" ", "").lower(), name=name) for name in ships],
        )
        for liner_name, ships in layout.items()
    ]


def assert_tree_invariants(tree: CatalogTree) -> None:
    """Closed liners hold no open ships; open ships are always on screen."""
    for liner in tree.groups():
        if not liner.open:
            assert not any(ship.open for ship in tree.items_of(liner)), liner.id
    for ship in tree.items():
        if ship.open:
            assert ship.visible and tree.group_of(ship).visible, ship.id


SAMPLE_LAYOUT = {
    "GroupX": ["Ship1", "Ship2"],
    "GroupY": ["Ship A", "Ship B"],
    "Northern Coast": ["Fjord Explorer", "Polaris"],
}

SAMPLE_DETAILS = {
    "shipa": [{"date": "2025-03-15", "score": "98/100"}],
    "ship1": [{"date": "2025-01-02", "score": "91/100"}, {"date": "2024-07-19", "score": "88/100"}],
    "polaris": [],
}


# ============================================================================
# MODEL FIXTURES
# ============================================================================

@pytest.fixture
def records() -> List[LinerRecord]:
    return make_liners(SAMPLE_LAYOUT)


@pytest.fixture
def tree(records: List[LinerRecord]) -> CatalogTree:
    """Freshly built, collapsed sample tree."""
    catalog = CatalogTree()
    catalog.build(records)
    catalog.collapse_all()
    return catalog


@pytest.fixture
def fake_source(records: List[LinerRecord]) -> FakeSource:
    return FakeSource(records, SAMPLE_DETAILS, failing={"shipb"})


# ============================================================================
# API FIXTURES
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(load_on_startup=True, debug=False)


@pytest.fixture
def client(fake_source: FakeSource, test_settings: Settings) -> Generator[TestClient, None, None]:
    """Test client whose browse session is fed by the fake source."""
    app = Application(settings=test_settings, source=fake_source).app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unloaded_client(fake_source: FakeSource) -> Generator[TestClient, None, None]:
    """Test client whose catalog has not been loaded yet."""
    settings = Settings(load_on_startup=False)
    app = Application(settings=settings, source=fake_source).app
    with TestClient(app) as test_client:
        yield test_client
