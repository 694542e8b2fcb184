"""API tests for promo code endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _payload(**overrides: Any) -> dict[str, Any]:
    now = datetime.now(UTC)
    data: dict[str, Any] = {
        "code": "summer20",
        "description": "Summer sale",
        "discount_type": "percentage",
        "discount_value": "20",
        "max_discount": "150",
        "usage_limit": 100,
        "valid_from": (now - timedelta(days=1)).isoformat(),
        "valid_until": (now + timedelta(days=30)).isoformat(),
    }
    data.update(overrides)
    return data


async def _create(client: AsyncClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    response = await client.post("/api/v1/promo-codes", json=_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_validate_promo_code(client: AsyncClient, admin_headers) -> None:
    await _create(client, admin_headers)

    response = await client.post(
        "/api/v1/promo-codes/validate", json={"code": "SUMMER20", "amount": "1000"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "SUMMER20"
    assert body["discount"] == "150.00"
    assert body["final_amount"] == "850.00"


async def test_validate_unknown_code_returns_404(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/promo-codes/validate", json={"code": "MISSING", "amount": "100"}
    )
    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "NOT_FOUND"


async def test_validate_rejection_carries_kind(client: AsyncClient, admin_headers) -> None:
    await _create(client, admin_headers, min_purchase_amount="500")
    response = await client.post(
        "/api/v1/promo-codes/validate", json={"code": "SUMMER20", "amount": "100"}
    )
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "MIN_PURCHASE_NOT_MET"
    assert "500.00" in detail["message"]


async def test_validate_rejects_bad_token(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/promo-codes/validate",
        json={"code": "SUMMER20", "amount": "100"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


async def test_admin_routes_require_admin(client: AsyncClient, traveller_headers) -> None:
    response = await client.get("/api/v1/promo-codes")
    assert response.status_code == 401
    response = await client.get("/api/v1/promo-codes", headers=traveller_headers)
    assert response.status_code == 403
    response = await client.post(
        "/api/v1/promo-codes", json=_payload(), headers=traveller_headers
    )
    assert response.status_code == 403


async def test_create_duplicate_returns_409(client: AsyncClient, admin_headers) -> None:
    created = await _create(client, admin_headers)
    assert created["code"] == "SUMMER20"
    assert created["created_by"] == "admin-1"
    response = await client.post("/api/v1/promo-codes", json=_payload(), headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "DUPLICATE_CODE"


async def test_create_invalid_definition_returns_400(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/promo-codes", json=_payload(discount_value="150"), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "INVALID_DEFINITION"


async def test_list_is_cached_and_invalidated(
    client: AsyncClient, admin_headers, fake_redis
) -> None:
    await _create(client, admin_headers)

    response = await client.get("/api/v1/promo-codes", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert [promo["code"] for promo in body["promo_codes"]] == ["SUMMER20"]
    assert body["pagination"]["total"] == 1
    assert "promo-codes:limit:20|page:1" in fake_redis.store

    await _create(client, admin_headers, code="WINTER10")
    assert not any(key.startswith("promo-codes:") for key in fake_redis.store)

    response = await client.get(
        "/api/v1/promo-codes", params={"search": "WIN"}, headers=admin_headers
    )
    assert [promo["code"] for promo in response.json()["promo_codes"]] == ["WINTER10"]


async def test_get_update_delete(client: AsyncClient, admin_headers) -> None:
    created = await _create(client, admin_headers)
    promo_id = created["id"]

    response = await client.get(f"/api/v1/promo-codes/{promo_id}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.patch(
        f"/api/v1/promo-codes/{promo_id}",
        json={"is_active": False, "description": "Paused"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["description"] == "Paused"

    response = await client.post(
        "/api/v1/promo-codes/validate", json={"code": "SUMMER20", "amount": "100"}
    )
    assert response.json()["detail"]["kind"] == "INACTIVE"

    response = await client.delete(f"/api/v1/promo-codes/{promo_id}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get(f"/api/v1/promo-codes/{promo_id}", headers=admin_headers)
    assert response.status_code == 404


async def test_stats_and_usages_for_unused_code(client: AsyncClient, admin_headers) -> None:
    created = await _create(client, admin_headers)
    promo_id = created["id"]

    response = await client.get(f"/api/v1/promo-codes/{promo_id}/stats", headers=admin_headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_used"] == 0
    assert stats["usage_remaining"] == 100
    assert stats["unique_users"] == 0
    assert stats["total_discount_given"] == "0.00"

    response = await client.get(f"/api/v1/promo-codes/{promo_id}/usages", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"items": [], "next_cursor": None, "has_more": False}
