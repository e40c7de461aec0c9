"""HTTP tests for the institution endpoints."""

from uuid import uuid4

import pytest

INSTITUTIONS = "/api/v1/institutions"
APPLICATIONS = "/api/v1/applications"
ACCOUNTS = "/api/v1/admin/accounts"

NEW_INSTITUTION = {"name": "Masjid Al-Noor", "location": "Accra, Ghana"}


async def _create(client, headers) -> dict:
    response = await client.post(INSTITUTIONS, json=NEW_INSTITUTION, headers=headers)
    assert response.status_code == 201
    return response.json()


async def _approved_admin(client, institution, headers) -> dict:
    account = (
        await client.post(
            APPLICATIONS,
            json={
                "institution_id": institution["id"],
                "name": "Imam Yusuf",
                "email": "imam@example.com",
                "phone": "+233200000001",
                "verification_code": institution["verification_code"],
            },
        )
    ).json()
    await client.post(f"{ACCOUNTS}/{account['id']}/approve", headers=headers)
    return account


@pytest.mark.asyncio
async def test_create_shows_code_to_super_admin(client, super_admin_headers):
    created = await _create(client, super_admin_headers)

    assert len(created["verification_code"]) == 16
    assert created["has_admin"] is False
    assert created["admin_id"] is None


@pytest.mark.asyncio
async def test_public_views_hide_code(client, super_admin_headers):
    created = await _create(client, super_admin_headers)

    detail = await client.get(f"{INSTITUTIONS}/{created['id']}")
    listed = await client.get(INSTITUTIONS)

    assert detail.status_code == 200
    assert "verification_code" not in detail.json()
    assert listed.json()["total"] == 1
    assert "verification_code" not in listed.json()["institutions"][0]


@pytest.mark.asyncio
async def test_admin_view_requires_super_admin(client, super_admin_headers, applicant_headers):
    created = await _create(client, super_admin_headers)

    allowed = await client.get(
        f"{INSTITUTIONS}/{created['id']}/verification-code", headers=super_admin_headers
    )
    denied = await client.get(
        f"{INSTITUTIONS}/{created['id']}/verification-code", headers=applicant_headers(uuid4())
    )

    assert allowed.json()["verification_code"] == created["verification_code"]
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_unknown_institution(client):
    response = await client.get(f"{INSTITUTIONS}/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "INSTITUTION_NOT_FOUND"


@pytest.mark.asyncio
async def test_regenerate_moves_admin_to_code_regenerated(
    client, super_admin_headers, applicant_headers
):
    created = await _create(client, super_admin_headers)
    account = await _approved_admin(client, created, super_admin_headers)

    response = await client.post(
        f"{INSTITUTIONS}/{created['id']}/regenerate-code",
        json={"reason": "Code shared publicly", "expiry_days": 7},
        headers=super_admin_headers,
    )

    assert response.status_code == 200
    regenerated = response.json()
    assert regenerated["verification_code"] != created["verification_code"]
    assert regenerated["admin_id"] is None

    status_response = await client.get(
        f"{APPLICATIONS}/me", headers=applicant_headers(account["id"])
    )
    assert status_response.json()["status"] == "code_regenerated"

    restored = await client.post(
        f"{APPLICATIONS}/me/validate-code",
        json={"verification_code": regenerated["verification_code"].lower()},
        headers=applicant_headers(account["id"]),
    )
    assert restored.status_code == 200
    assert restored.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_delete_releases_admin(client, super_admin_headers, applicant_headers):
    created = await _create(client, super_admin_headers)
    account = await _approved_admin(client, created, super_admin_headers)

    response = await client.request(
        "DELETE",
        f"{INSTITUTIONS}/{created['id']}",
        json={"reason": "Duplicate listing"},
        headers=super_admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["affected_admin_ids"] == [account["id"]]

    status_response = await client.get(
        f"{APPLICATIONS}/me", headers=applicant_headers(account["id"])
    )
    assert status_response.json()["status"] == "institution_deleted"
    assert status_response.json()["can_reapply"] is True
    assert (await client.get(f"{INSTITUTIONS}/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_expiring_codes(client, super_admin_headers):
    await _create(client, super_admin_headers)

    soon = await client.get(
        f"{INSTITUTIONS}/expiring-codes", params={"days_ahead": 7}, headers=super_admin_headers
    )
    later = await client.get(
        f"{INSTITUTIONS}/expiring-codes", params={"days_ahead": 31}, headers=super_admin_headers
    )

    assert soon.status_code == 200
    assert soon.json() == []
    assert len(later.json()) == 1
