from wacrm.db import models

from tests.helpers import auth_headers


def test_create_company_makes_creator_owner(client, db_session):
    headers = auth_headers("founder@example.com")
    response = client.post("/companies/", json={"name": "  Blue Fin  ", "wa_api_key": "EAAG-token"}, headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Blue Fin"
    assert body["has_wa_api_key"] is True
    assert "wa_api_key" not in body

    members = client.get(f"/companies/{body['id']}/members", headers=headers).json()
    assert [(m["email"], m["role"]) for m in members] == [("founder@example.com", "owner")]
    actions = [row.action_type for row in db_session.query(models.AuditLog).all()]
    assert actions == ["company_create"]


def test_duplicate_company_name(client, owner_context):
    _, _, headers = owner_context
    response = client.post("/companies/", json={"name": "Acme Trading"}, headers=headers)
    assert response.status_code == 409


def test_list_only_member_companies(client, owner_context, company_factory):
    _, company, headers = owner_context
    company_factory("Hidden Co")
    names = [c["name"] for c in client.get("/companies/", headers=headers).json()]
    assert names == ["Acme Trading"]


def test_get_company_requires_membership(client, owner_context, user_factory):
    _, company, headers = owner_context
    assert client.get(f"/companies/{company.id}", headers=headers).status_code == 200
    user_factory("outsider@example.com")
    assert client.get(f"/companies/{company.id}", headers=auth_headers("outsider@example.com")).status_code == 403


def test_update_company_settings(client, owner_context):
    _, company, headers = owner_context
    response = client.put(
        f"/companies/{company.id}",
        json={"wa_phone_number_id": "10998877", "wa_welcome_message": "Hi!", "wa_api_key": "tok"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["wa_phone_number_id"] == "10998877"
    assert body["has_wa_api_key"] is True

    cleared = client.put(f"/companies/{company.id}", json={"clear_wa_api_key": True}, headers=headers).json()
    assert cleared["has_wa_api_key"] is False


def test_update_company_requires_manage(client, editor_context):
    _, company, headers = editor_context
    assert client.put(f"/companies/{company.id}", json={"phone": "1"}, headers=headers).status_code == 403


def test_delete_company_owner_only(client, owner_context, editor_context, db_session):
    _, company, owner_headers = owner_context
    _, _, editor_headers = editor_context
    assert client.delete(f"/companies/{company.id}", headers=editor_headers).status_code == 403
    assert client.delete(f"/companies/{company.id}", headers=owner_headers).status_code == 204
    assert client.get(f"/companies/{company.id}", headers=owner_headers).status_code == 404
    assert db_session.query(models.CompanyMembership).count() == 0


def test_member_lifecycle(client, owner_context):
    owner, company, headers = owner_context
    added = client.post(
        f"/companies/{company.id}/members",
        json={"email": "New.Member@Example.com", "role": "editor"},
        headers=headers,
    )
    assert added.status_code == 201
    member = added.json()
    assert member["email"] == "new.member@example.com"
    assert member["can_write"] is True

    duplicate = client.post(f"/companies/{company.id}/members", json={"email": "new.member@example.com"}, headers=headers)
    assert duplicate.status_code == 409

    updated = client.put(
        f"/companies/{company.id}/members/{member['user_id']}",
        json={"role": "viewer"},
        headers=headers,
    )
    assert updated.json()["role"] == "viewer"
    assert updated.json()["can_write"] is False

    assert client.delete(f"/companies/{company.id}/members/{member['user_id']}", headers=headers).status_code == 204
    assert client.delete(f"/companies/{company.id}/members/{member['user_id']}", headers=headers).status_code == 404


def test_invalid_member_role(client, owner_context):
    _, company, headers = owner_context
    response = client.post(f"/companies/{company.id}/members", json={"email": "x@example.com", "role": "guest"}, headers=headers)
    assert response.status_code == 422


def test_last_owner_is_protected(client, owner_context):
    owner, company, headers = owner_context
    demote = client.put(f"/companies/{company.id}/members/{owner.id}", json={"role": "admin"}, headers=headers)
    assert demote.status_code == 409
    remove = client.delete(f"/companies/{company.id}/members/{owner.id}", headers=headers)
    assert remove.status_code == 409
