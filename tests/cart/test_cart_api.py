"""
Tests d'intégration pour les endpoints du panier.
"""
import pytest
from fastapi import status
from httpx import AsyncClient

from marketplace.config import settings

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def test_add_then_view_cart(test_client: AsyncClient, auth_headers_client, product_a):
    product_id = product_a.id
    added = await test_client.post(
        f"{API_PREFIX}/cart/items", json={"product_id": product_id, "quantity": 2}, headers=auth_headers_client
    )
    assert added.status_code == status.HTTP_200_OK

    response = await test_client.get(f"{API_PREFIX}/cart/", headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total_items"] == 2
    assert float(data["total_price"]) == 25.0


async def test_zero_quantity_is_rejected(test_client: AsyncClient, auth_headers_client, product_a):
    response = await test_client.post(
        f"{API_PREFIX}/cart/items", json={"product_id": product_a.id, "quantity": 0}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


async def test_insufficient_stock(test_client: AsyncClient, auth_headers_client, product_b):
    response = await test_client.post(
        f"{API_PREFIX}/cart/items", json={"product_id": product_b.id, "quantity": 10}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Stock insuffisant" in response.json()["detail"]


async def test_livreur_has_no_cart(test_client: AsyncClient, auth_headers_livreur):
    response = await test_client.get(f"{API_PREFIX}/cart/", headers=auth_headers_livreur)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_update_remove_and_clear(test_client: AsyncClient, auth_headers_client, product_a, product_b):
    a_id, b_id = product_a.id, product_b.id
    await test_client.post(f"{API_PREFIX}/cart/items", json={"product_id": a_id, "quantity": 1}, headers=auth_headers_client)
    await test_client.post(f"{API_PREFIX}/cart/items", json={"product_id": b_id, "quantity": 1}, headers=auth_headers_client)

    updated = await test_client.patch(f"{API_PREFIX}/cart/items/{a_id}", json={"quantity": 3}, headers=auth_headers_client)
    assert {i["product_id"]: i["quantity"] for i in updated.json()["items"]} == {a_id: 3, b_id: 1}

    removed = await test_client.delete(f"{API_PREFIX}/cart/items/{b_id}", headers=auth_headers_client)
    assert [i["product_id"] for i in removed.json()["items"]] == [a_id]

    contains = await test_client.get(f"{API_PREFIX}/cart/items/{b_id}", headers=auth_headers_client)
    assert contains.json() == {"product_id": b_id, "in_cart": False}

    cleared = await test_client.delete(f"{API_PREFIX}/cart/", headers=auth_headers_client)
    assert cleared.status_code == status.HTTP_200_OK
    assert cleared.json()["items"] == []


async def test_clear_without_cart_returns_404(test_client: AsyncClient, auth_headers_client):
    response = await test_client.delete(f"{API_PREFIX}/cart/", headers=auth_headers_client)
    assert response.status_code == status.HTTP_404_NOT_FOUND
