import copy

import httpx
import pytest

from delivery_list.config import Settings
from delivery_list.source.client import DeliverySourceClient

TEST_SOURCE_URL = "http://source.test/api/data"

# Example record from the delivery source
RECORD_D1 = {
    "Key": 101,
    "Step_ID": 0,
    "DelCode_w_o__": "D1",
    "Short_description": "Parts",
    "Client": "Acme",
    "Planned_Tasks": 3,
    "Total_Tasks": 10,
    "Planned_Start_Timestamp": "2024-01-01T00:00:00Z",
    "Planned_Delivery_Timestamp": "2024-01-03T12:00:00Z",
}

GROUPED_PAYLOAD = {
    "D1": [
        RECORD_D1,
        {
            "Key": 102,
            "Step_ID": 1,
            "DelCode_w_o__": "D1",
            "Short_description": "Parts inspection",
            "Client": "Acme",
        },
    ],
    "D2": [
        {
            "Key": 201,
            "Step_ID": 0,
            "DelCode_w_o__": "D2",
            "Short_description": "Steel beams",
            "Client": "Globex",
            "Planned_Tasks": 8,
            "Total_Tasks": 10,
            "Planned_Start_Timestamp": {"value": "2024-02-10T08:00:00Z"},
            "Planned_Delivery_Timestamp": {"value": "2024-02-15T14:30:00Z"},
        },
    ],
    "D3": [
        {
            "Key": 301,
            "Step_ID": 0,
            "DelCode_w_o__": "D3",
            "Short_description": "Concrete",
            "Client": "Initech",
            "Planned_Tasks": 0,
            "Total_Tasks": 0,
            "Planned_Start_Timestamp": None,
            "Planned_Delivery_Timestamp": "2024-03-01T00:00:00Z",
        },
    ],
}


def json_transport(payload, status_code: int = 200) -> httpx.MockTransport:
    """Transport answering every request with the given JSON payload."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


@pytest.fixture
def grouped_payload():
    return copy.deepcopy(GROUPED_PAYLOAD)


@pytest.fixture
def settings():
    return Settings(source_url=TEST_SOURCE_URL, visible_count=2, display_timezone="UTC")


@pytest.fixture
def make_source_client():
    """Factory for clients backed by an in-memory transport instead of the network."""

    def _make(payload=None, status_code: int = 200, handler=None) -> DeliverySourceClient:
        transport = httpx.MockTransport(handler) if handler else json_transport(payload, status_code)
        return DeliverySourceClient(TEST_SOURCE_URL, transport=transport)

    return _make


@pytest.fixture
def source_client(make_source_client, grouped_payload):
    return make_source_client(grouped_payload)
