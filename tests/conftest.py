"""Shared test fixtures for all test modules."""

from datetime import datetime, timedelta, timezone

import pytest
import structlog

from regenlock.models.generator import GeneratedItem, GeneratorOutput
from regenlock.services.artifact_fetcher import FetchedArtifact
from regenlock.services.exceptions import ArtifactFetchError
from regenlock.services.version_store import add_version, create_version
from regenlock.utils.ids import sequential_ids


class TickingClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


class FakeFetcher:
    """Artifact fetcher that serves canned bytes and fails for chosen URLs."""

    def __init__(self, failing_urls=(), reason="image fetch failed (404)"):
        self.failing_urls = set(failing_urls)
        self.reason = reason
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        if url in self.failing_urls:
            raise ArtifactFetchError(url, self.reason)
        return FetchedArtifact(content=b"\x89PNG fake", content_type="image/png")


async def no_sleep(_seconds):
    return None


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Keep structlog output out of captured stdout (CLI tests read it)."""
    structlog.configure(logger_factory=structlog.ReturnLoggerFactory())


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def id_factory():
    return sequential_ids("id")


@pytest.fixture
def logo_output():
    """Three generated logo concepts with remote images."""
    names = ["Sunrise Mark", "Harbor Light", "Bold Monogram"]
    return GeneratorOutput(
        items=[
            GeneratedItem(
                key=f"logos.{i}",
                title=f"Concept {i + 1}",
                text=name,
                attributes={
                    "image_url": f"https://cdn.example.com/logo-{i}.png",
                    "prompt": f"minimal logo, concept {i + 1}",
                },
            )
            for i, name in enumerate(names)
        ]
    )


@pytest.fixture
def offer_output():
    """Promo copy for a discount offer."""
    return GeneratorOutput.from_payload({
        "headline": "Spring Glow Facial: 20% off",
        "body": "Treat yourself to 20% off any facial through March 31, 2025. New customers only.",
        "callToAction": "Book your glow-up today",
    })


@pytest.fixture
def logo_versions(logo_output, id_factory, clock):
    """Collection holding a single logo version set."""
    version = create_version(
        {"businessName": "Ocala Spa"}, logo_output, id_factory=id_factory, clock=clock
    )
    return add_version((), version)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def make_fetcher():
    """Factory for fetchers that fail on the given URLs."""
    return FakeFetcher


@pytest.fixture
def instant_sleep():
    return no_sleep
