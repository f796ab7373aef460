import pytest
from fastapi.testclient import TestClient

from cofacilitator.rate_limit import FixedWindowRateLimiter
from stubs import StubClient


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def api(stub_client, monkeypatch):
    """TestClient over the app with the model stubbed and fresh rate limits."""
    from cofacilitator import main

    for service in (main.live_service, main.legacy_service, main.speaker_service):
        monkeypatch.setattr(service, "client", stub_client)
        monkeypatch.setattr(
            service,
            "rate_limiter",
            FixedWindowRateLimiter(service.profile.rate_limit_per_hour),
        )
    return TestClient(main.app)
