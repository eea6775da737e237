"""A learner's data is reachable by that learner and by admins only."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from progress_service.models.learner import Learner
from tests.conftest import auth, mint_token

READ_PATHS = ("stats", "progress", "achievements", "bookmarks", "summary", "categories", "overview")


@pytest.mark.parametrize("path", READ_PATHS)
def test_owner_can_read(client: TestClient, token: str, learner: Learner, path: str) -> None:
    resp = client.get(f"/v1/learners/{learner.id}/{path}", headers=auth(token))
    assert resp.status_code == 200


@pytest.mark.parametrize("path", READ_PATHS)
def test_other_user_is_forbidden(client: TestClient, learner: Learner, path: str) -> None:
    stranger = mint_token(uuid4())
    resp = client.get(f"/v1/learners/{learner.id}/{path}", headers=auth(stranger))
    assert resp.status_code == 403


def test_admin_can_read_anyone(client: TestClient, admin_token: str, learner: Learner) -> None:
    resp = client.get(f"/v1/learners/{learner.id}/stats", headers=auth(admin_token))
    assert resp.status_code == 200


def test_admin_can_grant_achievement(
    client: TestClient, admin_token: str, learner: Learner
) -> None:
    resp = client.post(
        f"/v1/learners/{learner.id}/achievements",
        json={"name": "Helper", "type": "engagement"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["unlocked"] is True


def test_other_user_cannot_grant_achievement(client: TestClient, learner: Learner) -> None:
    resp = client.post(
        f"/v1/learners/{learner.id}/achievements",
        json={"name": "Helper", "type": "engagement"},
        headers=auth(mint_token(uuid4())),
    )
    assert resp.status_code == 403


def test_me_resolves_to_caller(client: TestClient, token: str) -> None:
    assert client.get("/v1/learners/me/progress", headers=auth(token)).status_code == 200


def test_malformed_user_id(client: TestClient, admin_token: str) -> None:
    resp = client.get("/v1/learners/not-a-uuid/stats", headers=auth(admin_token))
    assert resp.status_code == 422


@pytest.mark.parametrize("path", READ_PATHS)
def test_unknown_learner_is_404(client: TestClient, admin_token: str, path: str) -> None:
    resp = client.get(f"/v1/learners/{uuid4()}/{path}", headers=auth(admin_token))
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "not_found"
