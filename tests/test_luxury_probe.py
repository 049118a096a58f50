from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from bellhopping.auth import AuthenticationError
from bellhopping.luxury.probe import (
    LUXURY_RATE_CODES,
    LuxuryProbe,
    ProbeConfig,
    candidate_rate_codes,
    extract_benefits,
)
from bellhopping.services.sabre_client import SabreClient

from sabre_fixtures import DummyAuth, make_settings, sabre_rate_plans

TODAY = date(2026, 10, 18)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _probe(handler, *, auth=None, sleep=None) -> tuple[LuxuryProbe, httpx.AsyncClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = SabreClient(make_settings(), client=http)
    probe = LuxuryProbe(auth or DummyAuth(), client, today=lambda: TODAY, sleep=sleep or RecordingSleep())
    return probe, http


@pytest.mark.asyncio
async def test_probe_confirms_returned_candidate_code():
    requests: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        assert request.url.path == "/v3.0.0/hotel/availability"
        assert request.headers["Authorization"] == "Bearer token-123"
        return httpx.Response(
            200,
            json=sabre_rate_plans(
                {"RatePlanCode": "RAC", "RatePlanRate": {"AmountBeforeTax": "399.00"}},
                {
                    "RatePlanCode": "VIR",
                    "RatePlanRate": {"AmountBeforeTax": "450.00", "CurrencyCode": "USD"},
                    "RatePlanDescription": {
                        "Text": "Daily breakfast for two, $100 hotel credit, upgrade on arrival"
                    },
                },
            ),
        )

    probe, http = _probe(handler)
    async with http:
        result = await probe.probe("02179")

    assert result.is_confirmed is True
    assert result.rate_code_found == "VIR"
    assert result.rate_amount == 450.0
    assert result.currency == "USD"
    assert result.benefits_detected == ["BREAKFAST", "CREDIT", "UPGRADE"]
    assert result.error is None

    criteria = requests[0]["GetHotelAvailRQ"]["SearchCriteria"]
    assert [c["RatePlanCode"] for c in criteria["RatePlanCandidates"]["RatePlanCandidate"]] == ["VIR", "VRT", "VTU"]
    assert criteria["RatePlanCandidates"]["ExactMatchOnly"] is False
    assert criteria["StayDateRange"] == {"StartDate": "2026-12-02", "EndDate": "2026-12-04"}
    assert probe.is_validated("02179")
    assert probe.validation_result("02179") is result


@pytest.mark.asyncio
async def test_probe_rejects_when_only_standard_rates_return():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=sabre_rate_plans({"RatePlanCode": "RAC"}))

    probe, http = _probe(handler)
    async with http:
        result = await probe.probe("55555", "FS")

    assert result.is_confirmed is False
    assert result.rate_code_found is None
    assert result.benefits_detected == []
    assert result.error is None


@pytest.mark.asyncio
async def test_probe_tolerates_empty_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"GetHotelAvailRS": {}})

    probe, http = _probe(handler)
    async with http:
        result = await probe.probe("55555", "FS")

    assert result.is_confirmed is False
    assert result.error is None


@pytest.mark.asyncio
async def test_http_error_becomes_result_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    probe, http = _probe(handler)
    async with http:
        result = await probe.probe("55555", "RZ")

    assert result.is_confirmed is False
    assert result.error == "API Error: 503"


@pytest.mark.asyncio
async def test_timeout_becomes_result_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    probe, http = _probe(handler)
    async with http:
        result = await probe.probe("55555")

    assert result.error == "Probe timed out"


@pytest.mark.asyncio
async def test_auth_failure_does_not_escape_probe():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    auth = DummyAuth(error=AuthenticationError([("epr", "HTTP 401")]))
    probe, http = _probe(handler, auth=auth)
    async with http:
        result = await probe.probe("55555")

    assert result.is_confirmed is False
    assert "All authentication methods failed" in (result.error or "")


@pytest.mark.asyncio
async def test_batch_probes_sequentially_with_delay():
    order: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hotel_id = json.loads(request.content)["GetHotelAvailRQ"]["SearchCriteria"]["HotelRefs"]["HotelRef"][0][
            "HotelCode"
        ]
        order.append(hotel_id)
        code = "FSP" if hotel_id == "A" else "RAC"
        return httpx.Response(200, json=sabre_rate_plans({"RatePlanCode": code}))

    sleep = RecordingSleep()
    probe, http = _probe(handler, sleep=sleep)
    configs = [ProbeConfig("A", "FS"), ProbeConfig("B", "FS"), ProbeConfig("C")]
    async with http:
        results = await probe.probe_batch(configs, delay_ms=250)

    assert order == ["A", "B", "C"]
    assert sleep.calls == [0.25, 0.25]
    assert {hotel_id: result.is_confirmed for hotel_id, result in results.items()} == {
        "A": True,
        "B": False,
        "C": False,
    }


@pytest.mark.asyncio
async def test_batch_can_reuse_memoised_results():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=sabre_rate_plans({"RatePlanCode": "VIR"}))

    probe, http = _probe(handler)
    async with http:
        await probe.probe("A")
        results = await probe.probe_batch([ProbeConfig("A"), ProbeConfig("B")], skip_validated=True)

    assert calls == 2
    assert set(results) == {"A", "B"}


def test_candidate_codes_put_chain_codes_before_default_set():
    assert candidate_rate_codes("FS") == ["FSP", "FPP", "VIR", "VRT", "VTU"]
    assert candidate_rate_codes("INDEPENDENT") == list(LUXURY_RATE_CODES["DEFAULT"])
    assert candidate_rate_codes(None) == ["VIR", "VRT", "VTU"]


@pytest.mark.parametrize(
    "description, expected",
    [
        ("", []),
        ("Continental BKFST daily", ["BREAKFAST"]),
        ("Late check-out and early checkin subject to availability", ["LATE_CHECKOUT", "EARLY_CHECKIN"]),
        ("USD 50 spa treatment", ["CREDIT", "SPA_CREDIT"]),
        ("VIP welcome amenity", ["VIP_AMENITY"]),
    ],
)
def test_extract_benefits(description, expected):
    assert extract_benefits(description) == expected


@pytest.mark.asyncio
async def test_failed_probe_is_retried_by_batch():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(503, text="Service Unavailable")
        return httpx.Response(200, json=sabre_rate_plans({"RatePlanCode": "VIR"}))

    probe, http = _probe(handler)
    async with http:
        failed = await probe.probe("A")
        assert failed.error == "API Error: 503"
        assert not probe.is_validated("A")
        results = await probe.probe_batch([ProbeConfig("A")], skip_validated=True)

    assert calls == 2
    assert results["A"].is_confirmed is True
    assert probe.is_validated("A")
