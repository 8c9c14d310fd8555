"""
Tests d'intégration pour l'authentification et la gestion des utilisateurs.
"""
import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.config import settings
from marketplace.livreurs.models import Livreur

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def test_admin_creates_livreur_with_profile(test_client: AsyncClient, auth_headers_admin, db_session: AsyncSession):
    response = await test_client.post(
        f"{API_PREFIX}/users/",
        json={
            "email": "nouveau.livreur@example.com",
            "password": "secret123",
            "role": "livreur",
            "location": {"latitude": 43.6047, "longitude": 1.4442},
        },
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_201_CREATED
    user_id = response.json()["id"]

    profile = (await db_session.execute(select(Livreur).where(Livreur.user_id == user_id))).scalars().first()
    assert profile is not None
    assert profile.latitude == pytest.approx(43.6047)


async def test_livreur_without_location_is_rejected(test_client: AsyncClient, auth_headers_admin):
    response = await test_client.post(
        f"{API_PREFIX}/users/",
        json={"email": "sans.position@example.com", "password": "secret123", "role": "livreur"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_duplicate_email(test_client: AsyncClient, auth_headers_admin, client_user):
    response = await test_client.post(
        f"{API_PREFIX}/users/",
        json={"email": client_user.email, "password": "secret123"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_409_CONFLICT


async def test_unknown_role(test_client: AsyncClient, auth_headers_admin):
    response = await test_client.post(
        f"{API_PREFIX}/users/",
        json={"email": "pirate@example.com", "password": "secret123", "role": "pirate"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_client_cannot_create_users(test_client: AsyncClient, auth_headers_client):
    response = await test_client.post(
        f"{API_PREFIX}/users/",
        json={"email": "autre@example.com", "password": "secret123"},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_login_and_me(test_client: AsyncClient, client_user):
    email = client_user.email
    login = await test_client.post(
        f"{API_PREFIX}/auth/token", data={"username": email, "password": "testpassword"}
    )
    assert login.status_code == status.HTTP_200_OK
    token = login.json()["access_token"]

    me = await test_client.get(f"{API_PREFIX}/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["email"] == email


async def test_login_wrong_password(test_client: AsyncClient, client_user):
    login = await test_client.post(
        f"{API_PREFIX}/auth/token", data={"username": client_user.email, "password": "mauvais"}
    )
    assert login.status_code == status.HTTP_401_UNAUTHORIZED


async def test_invalid_token(test_client: AsyncClient):
    response = await test_client.get(f"{API_PREFIX}/users/me", headers={"Authorization": "Bearer pas-un-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
