import uuid

from tests.helpers import valid_metaflow


def _create(client, headers, name="Lead capture", **fields):
    payload = {"name": name, "form_json": valid_metaflow()}
    payload.update(fields)
    response = client.post("/eforms", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_fetch(client, owner_context):
    owner, company, headers = owner_context
    form = _create(client, headers, description="Collects names")
    assert form["status"] == "A"
    assert form["rstatus"] == "A"
    assert form["created_user_id"] == str(owner.id)
    assert form["form_json"]["version"] == "6.0"
    assert client.get(f"/eforms/{form['id']}", headers=headers).json()["name"] == "Lead capture"


def test_create_requires_html_or_json(client, owner_context):
    _, _, headers = owner_context
    response = client.post("/eforms", json={"name": "Empty"}, headers=headers)
    assert response.status_code == 400
    html_only = client.post("/eforms", json={"name": "Legacy", "html_code": "<form></form>"}, headers=headers)
    assert html_only.status_code == 201


def test_invalid_form_json_lists_errors(client, owner_context):
    _, _, headers = owner_context
    response = client.post("/eforms", json={"name": "Broken", "form_json": {"version": "6.0", "screens": []}}, headers=headers)
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid form JSON"
    assert detail["errors"]


def test_validate_endpoint(client, owner_context):
    _, _, headers = owner_context
    ok = client.post("/eforms/validate", json=valid_metaflow(), headers=headers).json()
    assert ok == {"valid": True, "errors": []}
    bad = client.post("/eforms/validate", json={"screens": []}, headers=headers).json()
    assert bad["valid"] is False
    assert bad["errors"]


def test_validate_endpoint_reports_malformed_values(client, owner_context):
    _, _, headers = owner_context
    doc = valid_metaflow()
    doc["screens"][0]["layout"]["children"].append({"type": ["TextBody"]})
    doc["screens"][1]["layout"]["children"][1]["on-click-action"] = {"name": {"x": 1}}
    response = client.post("/eforms/validate", json=doc, headers=headers)
    assert response.status_code == 200
    assert response.json()["valid"] is False

    created = client.post("/eforms", json={"name": "Broken", "form_json": doc}, headers=headers)
    assert created.status_code == 400


def test_list_search_and_sort(client, owner_context):
    _, _, headers = owner_context
    _create(client, headers, name="Beta survey")
    _create(client, headers, name="Alpha signup")
    body = client.get("/eforms", params={"sort_field": "name", "sort_order": "asc"}, headers=headers).json()
    assert [f["name"] for f in body["data"]] == ["Alpha signup", "Beta survey"]
    assert body["total_pages"] == 1
    found = client.get("/eforms", params={"search": "survey"}, headers=headers).json()
    assert [f["name"] for f in found["data"]] == ["Beta survey"]


def test_update_and_status_rules(client, owner_context):
    _, _, headers = owner_context
    form = _create(client, headers)
    updated = client.put(f"/eforms/{form['id']}", json={"status": "I", "description": "Paused"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["status"] == "I"
    assert updated.json()["form_json"]["version"] == "6.0"

    assert client.put(f"/eforms/{form['id']}", json={"status": "X"}, headers=headers).status_code == 400
    assert client.put(f"/eforms/{form['id']}", json={"name": " "}, headers=headers).status_code == 400


def test_batch_status_and_delete(client, owner_context):
    _, _, headers = owner_context
    first = _create(client, headers, name="One")
    second = _create(client, headers, name="Two")
    ids = [first["id"], second["id"]]

    invalid = client.post("/eforms/batch-status", json={"form_ids": ids, "status": "Z"}, headers=headers)
    assert invalid.status_code == 400
    updated = client.post("/eforms/batch-status", json={"form_ids": ids, "status": "i"}, headers=headers)
    assert updated.json() == {"updated_count": 2}
    assert client.get(f"/eforms/{first['id']}", headers=headers).json()["status"] == "I"

    deleted = client.post("/eforms/batch-delete", json={"form_ids": ids}, headers=headers)
    assert deleted.json() == {"deleted_count": 2}
    missing = client.post("/eforms/batch-delete", json={"form_ids": [str(uuid.uuid4())]}, headers=headers)
    assert missing.status_code == 404


def test_delete_single_form(client, owner_context):
    _, _, headers = owner_context
    form = _create(client, headers)
    assert client.delete(f"/eforms/{form['id']}", headers=headers).status_code == 204
    assert client.get(f"/eforms/{form['id']}", headers=headers).status_code == 404


def test_viewer_is_read_only(client, viewer_context):
    _, _, headers = viewer_context
    assert client.get("/eforms", headers=headers).status_code == 200
    assert client.post("/eforms", json={"name": "X", "html_code": "<p/>"}, headers=headers).status_code == 403
