"""
REST 接口：响应格式和旧接口的 404 约定
"""
from grindhub.core.errors import StoreError
from grindhub.services import messages_service


def create_group(client, name="CS2030 Study", description="exam prep"):
    resp = client.post("/api/groups/create", json={"name": name, "description": description})
    assert resp.status_code == 201
    return resp.json()["group"]


def test_create_group(client):
    resp = client.post("/api/groups/create", json={"name": "CS2030 Study", "description": "exam prep"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"]
    group = body["group"]
    assert group["group_id"]
    assert group["name"] == "CS2030 Study"
    assert group["description"] == "exam prep"
    assert len(group["invitation_code"]) == 6


def test_create_group_missing_name(client):
    resp = client.post("/api/groups/create", json={"description": "no name"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_join_group_and_duplicate_join(client, make_user):
    user_id = make_user()
    group = create_group(client)
    body = {"invitation_code": group["invitation_code"], "user_id": user_id}

    first = client.post("/api/groups/join", json=body)
    second = client.post("/api/groups/join", json=body)

    assert first.status_code == 201
    assert first.json()["success"] is True
    membership = first.json()["membership"]
    assert membership["group_id"] == group["group_id"]
    assert membership["user_id"] == user_id
    assert second.status_code == 200
    assert second.json()["success"] is True
    assert second.json()["membership"]["member_id"] == membership["member_id"]


def test_join_group_unknown_code(client, make_user):
    user_id = make_user()
    resp = client.post("/api/groups/join", json={"invitation_code": "ZZZZZZ", "user_id": user_id})

    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["message"]


def test_list_groups_empty_is_404(client, make_user):
    user_id = make_user()
    resp = client.post("/api/groups/list", json={"user_id": user_id})

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "No groups found!"}


def test_list_groups(client, make_user):
    user_id = make_user()
    group = create_group(client)
    client.post("/api/groups/join", json={"invitation_code": group["invitation_code"], "user_id": user_id})

    resp = client.post("/api/groups/list", json={"user_id": user_id})

    assert resp.status_code == 200
    assert resp.json()["groups"] == [{"group_id": group["group_id"], "name": "CS2030 Study"}]


def test_group_summary(client, make_user):
    user_id = make_user("alice")
    group = create_group(client)
    client.post("/api/groups/join", json={"invitation_code": group["invitation_code"], "user_id": user_id})

    resp = client.post("/api/groups/summary", json={"group_id": group["group_id"]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["name"] == "CS2030 Study"
    assert body["description"] == "exam prep"
    assert body["invitation_code"] == group["invitation_code"]
    assert body["members"] == [{"user_id": user_id, "username": "alice"}]


def test_group_summary_without_members_is_404(client):
    group = create_group(client)
    resp = client.post("/api/groups/summary", json={"group_id": group["group_id"]})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_group_summary_unknown_group(client):
    resp = client.post("/api/groups/summary", json={"group_id": "nope"})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_send_and_list_messages(client, make_user):
    user_id = make_user("u1")
    group = create_group(client)
    client.post("/api/groups/join", json={"invitation_code": group["invitation_code"], "user_id": user_id})

    sent = client.post(
        "/api/messages/send",
        json={"group_id": group["group_id"], "user_id": user_id, "content": "hello"},
    )
    assert sent.status_code == 201
    assert sent.json()["success"] is True
    data = sent.json()["data"]
    assert data["content"] == "hello"
    assert data["user_id"] == user_id
    assert data["message_id"]

    listed = client.post("/api/messages/list", json={"group_id": group["group_id"]})
    assert listed.status_code == 200
    messages = listed.json()["messages"]
    assert [m["message_id"] for m in messages] == [data["message_id"]]
    assert messages[0]["username"] == "u1"


def test_list_messages_empty_is_404(client):
    group = create_group(client)
    resp = client.post("/api/messages/list", json={"group_id": group["group_id"]})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "No messages found!"}


def test_send_message_missing_fields(client, make_user):
    user_id = make_user()
    group = create_group(client)

    resp = client.post("/api/messages/send", json={"group_id": group["group_id"], "user_id": user_id})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"].startswith("Missing required fields")


def test_send_message_unknown_group(client, make_user):
    user_id = make_user()
    resp = client.post("/api/messages/send", json={"group_id": "nope", "user_id": user_id, "content": "hi"})
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_malformed_body_is_400(client):
    resp = client.post("/api/messages/send", json={"group_id": ["not", "a", "string"]})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_store_error_does_not_leak_detail(client, make_user, monkeypatch):
    def broken(*args, **kwargs):
        raise StoreError("duplicate key value violates constraint pk_secret")

    monkeypatch.setattr(messages_service, "list_messages", broken)
    resp = client.post("/api/messages/list", json={"group_id": "any"})

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Something went wrong"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["websocket_connections"] == 0
