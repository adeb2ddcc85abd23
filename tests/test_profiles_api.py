"""Profile API tests — the candidate profile and the account name.

Learn: Both profiles are addressed by the caller's token rather than an
id in the path, so the interesting checks are the role gate and that a
partial update leaves the other fields alone.
"""

import pytest

from talentflow.services.candidate_service import normalize_skills


# ═══════════════════════════════════════════════════════════
# Candidate profile
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_new_candidate_has_empty_profile(client, candidate, candidate_headers):
    r = await client.get("/api/v1/candidates/profile", headers=candidate_headers)
    assert r.status_code == 200
    profile = r.json()
    assert profile["user_id"] == str(candidate.id)
    assert profile["user"]["email"] == candidate.email
    assert profile["phone"] is None
    assert profile["resume"] is None
    assert profile["skills"] == []


@pytest.mark.asyncio
async def test_partial_profile_update(client, candidate_headers):
    url = "/api/v1/candidates/profile"
    r = await client.put(
        url,
        json={"phone": "+351 912 345 678", "skills": ["Python", " SQL ", "python", ""]},
        headers=candidate_headers,
    )
    assert r.status_code == 200
    assert r.json()["skills"] == ["Python", "SQL"]

    r = await client.put(url, json={"resume": "Ten years of pipelines"}, headers=candidate_headers)
    assert r.status_code == 200
    profile = r.json()
    assert profile["resume"] == "Ten years of pipelines"
    assert profile["phone"] == "+351 912 345 678"
    assert profile["skills"] == ["Python", "SQL"]

    r = await client.get(url, headers=candidate_headers)
    assert r.json() == profile


@pytest.mark.asyncio
async def test_profile_phone_too_long(client, candidate_headers):
    r = await client.put(
        "/api/v1/candidates/profile", json={"phone": "9" * 31}, headers=candidate_headers
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_admin_has_no_candidate_profile(client, admin_headers):
    r = await client.get("/api/v1/candidates/profile", headers=admin_headers)
    assert r.status_code == 403
    r = await client.put("/api/v1/candidates/profile", json={}, headers=admin_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_profile_requires_a_session(client):
    r = await client.get("/api/v1/candidates/profile")
    assert r.status_code == 401


def test_normalize_skills():
    assert normalize_skills(["  Go", "go", "Rust", "  "]) == ["Go", "Rust"]
    assert normalize_skills([]) == []


# ═══════════════════════════════════════════════════════════
# Account name
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_rename_account(client, admin, admin_headers):
    r = await client.put("/api/v1/auth/profile", json={"name": "Ada"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Ada"
    assert r.json()["email"] == admin.email

    r = await client.get("/api/v1/auth/me", headers=admin_headers)
    assert r.json()["name"] == "Ada"


@pytest.mark.asyncio
async def test_rename_rejects_blank_name(client, candidate_headers):
    r = await client.put("/api/v1/auth/profile", json={"name": ""}, headers=candidate_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_rename_requires_a_session(client):
    r = await client.put("/api/v1/auth/profile", json={"name": "Nobody"})
    assert r.status_code == 401
