from tests.helpers import auth_headers


def test_company_id_required_for_regular_users(client, owner_context):
    user, _, _ = owner_context
    response = client.get("/audits/", headers=auth_headers(user.email))
    assert response.status_code == 403


def test_owner_sees_company_audits(client, owner_context):
    user, company, headers = owner_context
    client.post("/contactlist", json={"name": "Ana"}, headers=headers)
    response = client.get("/audits/", params={"company_id": str(company.id)}, headers=auth_headers(user.email))
    assert response.status_code == 200
    logs = response.json()
    assert [log["action_type"] for log in logs] == ["contact_create"]
    assert logs[0]["company_id"] == str(company.id)
    assert logs[0]["actor_email"] == "owner@example.com"


def test_editor_cannot_read_audits(client, editor_context):
    user, company, _ = editor_context
    response = client.get("/audits/", params={"company_id": str(company.id)}, headers=auth_headers(user.email))
    assert response.status_code == 403


def test_superadmin_sees_all_audits(client, owner_context, user_factory, company_factory, membership_factory):
    _, _, headers = owner_context
    client.post("/contactlist", json={"name": "Ana"}, headers=headers)
    other_owner = user_factory("other@example.com")
    other = company_factory("Other Co")
    membership_factory(other, other_owner)
    client.post("/contactlist", json={"name": "Ben"}, headers=auth_headers(other_owner.email, other))

    admin = user_factory("root@example.com", is_superadmin=True)
    logs = client.get("/audits/", headers=auth_headers(admin.email)).json()
    assert len(logs) == 2
    filtered = client.get("/audits/", params={"action_type": "contact_delete"}, headers=auth_headers(admin.email))
    assert filtered.json() == []


def test_audit_filters(client, owner_context):
    user, company, headers = owner_context
    client.post("/contactlist", json={"name": "Ana"}, headers=headers)
    client.post("/contactlist/groups", json={"name": "VIP"}, headers=headers)
    params = {"company_id": str(company.id), "target_type": "broadcast_group"}
    logs = client.get("/audits/", params=params, headers=auth_headers(user.email)).json()
    assert [log["action_type"] for log in logs] == ["group_create"]

    future = {"company_id": str(company.id), "since": "2999-01-01T00:00:00"}
    assert client.get("/audits/", params=future, headers=auth_headers(user.email)).json() == []
