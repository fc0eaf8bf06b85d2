"""Tests for orjson helpers."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from partner_wallet.models import TransactionKind
from partner_wallet.utils.json_utils import ORJSONResponse, json_dumps, json_loads


class TestJsonDumps:
    def test_event_payload(self):
        payload = {
            "transferId": UUID("12345678-1234-5678-1234-567812345678"),
            "transactionKind": TransactionKind.PARTNER_DEPOSIT,
            "amount": Decimal("3000"),
            "at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }

        assert json_loads(json_dumps(payload)) == {
            "transferId": "12345678-1234-5678-1234-567812345678",
            "transactionKind": "partner_deposit",
            "amount": "3000",
            "at": "2024-01-01T00:00:00Z",
        }

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            json_dumps({"value": object()})

    def test_loads_bytes(self):
        assert json_loads(b'{"balanceAfter": 7000}') == {"balanceAfter": 7000}


def test_response_renders_bytes():
    response = ORJSONResponse(content={"closed": 0})

    assert response.body == b'{"closed":0}'
    assert response.media_type == "application/json"
