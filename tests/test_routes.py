import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import create_app
from utils.settings import Settings


@pytest.fixture
def client(tmp_path, png):
    settings = Settings(
        save_cooldown=0,
        paste_cooldown=60,
        purge_interval=0,
        persist_interval=0,
        purge_days=1,
        submit_enabled=True,
        submit_notify=True,
        submit_cooldown=0,
        submit_users=frozenset({"alice"}),
        admin_users=frozenset({"root"}),
    )
    with TestClient(create_app(settings, database_dir=str(tmp_path))) as test_client:
        _register(test_client, "sign-1", "sign.small.wood", "alice")
        _register(test_client, "frame-1", "sign.pictureframe.landscape", "alice")
        upload = test_client.put(
            "/objects/sign-1/texture",
            files={"image": ("sign.png", png(), "image/png")},
        )
        assert upload.status_code == 200
        yield test_client


def _register(client, ref, object_type, owner_id):
    response = client.put(f"/objects/{ref}", json={"object_type": object_type, "owner_id": owner_id})
    assert response.status_code == 200


def _save(client, name, user_id="alice", target_ref="sign-1"):
    return client.post(f"/users/{user_id}/images", json={"target_ref": target_ref, "name": name})


def test_health_reports_ready(client):
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["service_ready"] is True
    assert body["db_initialized"] is True


def test_register_rejects_unknown_object_type(client):
    response = client.put("/objects/box-1", json={"object_type": "box.wooden", "owner_id": "alice"})
    assert response.status_code == 400


def test_save_list_paste_remove_flow(client):
    response = _save(client, "Barn")
    assert response.status_code == 200
    assert response.json()["message"] == 'Sign image "Barn" saved.'
    assert _save(client, "Apple").status_code == 200

    listing = client.get("/users/alice/images").json()
    assert [(i["ordinal"], i["name"]) for i in listing["images"]] == [(1, "Apple"), (2, "Barn")]
    assert listing["text"].splitlines()[-1] == "2.  Barn - Small Wooden Sign"

    pasted = client.post("/users/alice/images/paste", json={"target_ref": "frame-1", "reference": "2"})
    assert pasted.status_code == 200
    assert pasted.json()["name"] == "Barn"
    texture = client.get("/objects/frame-1/texture")
    with Image.open(io.BytesIO(texture.content)) as img:
        assert img.size == (256, 128)

    removed = client.delete("/users/alice/images/apple")
    assert removed.status_code == 200
    assert client.delete("/users/alice/images/1").json()["name"] == "Barn"
    assert client.get("/users/alice/images").status_code == 404


def test_error_statuses(client):
    assert _save(client, "Barn", target_ref="missing").status_code == 404
    assert _save(client, "Barn", user_id="mallory").status_code == 403
    assert _save(client, "   ").status_code == 400

    for name in ("a", "b", "c"):
        assert _save(client, name).status_code == 200
    quota = _save(client, "d")
    assert quota.status_code == 409
    assert quota.json()["detail"]["code"] == "quota_exceeded"

    removed = client.delete("/users/alice/images/a")
    assert removed.status_code == 200
    assert _save(client, "B").json()["detail"]["code"] == "duplicate_name"

    missing = client.post("/users/alice/images/paste", json={"target_ref": "sign-1", "reference": "zzz"})
    assert missing.status_code == 404
    assert missing.json()["detail"]["detail"] == "No match found with zzz"


def test_paste_cooldown_returns_429(client):
    _save(client, "Barn")
    payload = {"target_ref": "frame-1", "reference": "Barn"}
    assert client.post("/users/alice/images/paste", json=payload).status_code == 200

    response = client.post("/users/alice/images/paste", json=payload)
    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["code"] == "on_cooldown"
    assert 0 < detail["remaining_seconds"] <= 60


def test_submission_notifications(client):
    assert client.get("/users/root/notifications").json()["pending_submissions"] is None
    response = client.post("/users/alice/submissions", json={"target_ref": "sign-1", "name": "Logo"})
    assert response.status_code == 200
    assert client.post(
        "/users/bob/submissions", json={"target_ref": "sign-1", "name": "Logo"}
    ).status_code == 403

    assert client.get("/submissions/pending-count").json() == {"pending_submissions": 1}
    notice = client.get("/users/root/notifications").json()
    assert notice["pending_submissions"] == 1
    assert notice["message"] == "1 pending submissions."


def test_purge_endpoint_removes_inactive_users(client):
    _save(client, "Barn")
    assert client.post("/users/alice/seen", json={"now": 1_000}).json()["updated"] is True
    assert client.post("/users/nobody/seen", json={"now": 1_000}).json()["updated"] is False

    response = client.post("/admin/purge", json={"now": 1_000 + 2 * 86_400})
    assert response.json()["purged_users"] == ["alice"]
    assert client.get("/users/alice/images").status_code == 404
