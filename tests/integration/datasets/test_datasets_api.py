from wacrm.db import models


def _columns():
    return [
        {"column_name": "invoice_no", "data_type": "string", "is_primary_key": True, "sort_order": 0},
        {"column_name": "customer", "data_type": "string", "is_required": True, "max_length": 50, "sort_order": 1},
        {"column_name": "amount", "data_type": "decimal", "sort_order": 2},
        {"column_name": "items", "data_type": "int", "default_value": "1", "sort_order": 3},
        {"column_name": "paid", "data_type": "boolean", "sort_order": 4},
        {"column_name": "issued_at", "data_type": "datetime", "sort_order": 5},
    ]


def _create(client, headers, name="Invoices", **fields):
    payload = {"name": name, "description": "Monthly invoices", "data_source_type": "sql", "columns": _columns()}
    payload.update(fields)
    response = client.post("/datasets", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _add_record(client, headers, data_set_id, **values):
    response = client.post(f"/datasets/{data_set_id}/records", json={"values": values}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _seed_invoices(client, headers, data_set_id):
    _add_record(client, headers, data_set_id, invoice_no="INV-1", customer="Acme Trading", amount=120.5, items=3, paid=True, issued_at="2026-03-01T09:00:00")
    _add_record(client, headers, data_set_id, invoice_no="INV-2", customer="Globex", amount="80", paid="false", issued_at="2026-03-15T09:00:00+08:00")
    _add_record(client, headers, data_set_id, invoice_no="INV-3", customer="Acme Logistics", amount=300, items=7, issued_at="2026-04-02T12:00:00Z")


def test_create_and_get_data_set(client, owner_context, db_session):
    _, company, headers = owner_context
    created = _create(
        client,
        headers,
        data_source={"source_type": "SQL", "sql_query": "select * from invoices", "database_connection": "Server=db;Password=secret"},
    )
    assert created["company_id"] == str(company.id)
    assert created["data_source_type"] == "SQL"
    assert created["status"] == "Active"
    assert created["sync_status"] == "Idle"
    assert created["total_records"] == 0
    assert created["created_by"] == "owner@example.com"
    assert [c["column_name"] for c in created["columns"]] == ["invoice_no", "customer", "amount", "items", "paid", "issued_at"]
    source = created["data_source"]
    assert source["sql_query"] == "select * from invoices"
    assert source["has_database_connection"] is True
    assert source["has_authentication_config"] is False
    assert "database_connection" not in source

    stored = db_session.query(models.DataSetDataSource).one()
    assert stored.database_connection_encrypted
    assert b"secret" not in bytes(stored.database_connection_encrypted)

    fetched = client.get(f"/datasets/{created['id']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Invoices"


def test_invalid_definitions_are_rejected(client, owner_context):
    _, _, headers = owner_context
    base = {"name": "Bad", "data_source_type": "SQL"}
    duplicate = [{"column_name": "a"}, {"column_name": "A"}]
    assert client.post("/datasets", json={**base, "columns": duplicate}, headers=headers).status_code == 422
    two_keys = [{"column_name": "a", "is_primary_key": True}, {"column_name": "b", "is_primary_key": True}]
    assert client.post("/datasets", json={**base, "columns": two_keys}, headers=headers).status_code == 422
    bad_type = [{"column_name": "a", "data_type": "money"}]
    assert client.post("/datasets", json={**base, "columns": bad_type}, headers=headers).status_code == 422
    bad_default = [{"column_name": "a", "data_type": "int", "default_value": "many"}]
    assert client.post("/datasets", json={**base, "columns": bad_default}, headers=headers).status_code == 422
    assert client.post("/datasets", json={"name": "Bad", "data_source_type": "FTP"}, headers=headers).status_code == 422
    assert client.post("/datasets", json={"name": "  ", "data_source_type": "SQL"}, headers=headers).status_code == 422


def test_list_search_sort_and_company_scope(client, owner_context, company_factory, membership_factory):
    owner, _, headers = owner_context
    _create(client, headers, name="Invoices")
    _create(client, headers, name="Appointments", description="Clinic bookings", data_source_type="EXCEL")

    listing = client.get("/datasets", params={"sort_by": "name", "sort_order": "asc"}, headers=headers).json()
    assert [d["name"] for d in listing["data"]] == ["Appointments", "Invoices"]
    assert listing["total"] == 2
    assert listing["total_pages"] == 1

    search = client.get("/datasets", params={"search": "clinic"}, headers=headers).json()
    assert [d["name"] for d in search["data"]] == ["Appointments"]

    other = company_factory("Other Co")
    membership_factory(other, owner)
    other_headers = {**headers, "X-Company-Id": str(other.id)}
    assert client.get("/datasets", headers=other_headers).json()["total"] == 0
    first = listing["data"][0]["id"]
    assert client.get(f"/datasets/{first}", headers=other_headers).status_code == 404


def test_viewer_can_read_but_not_write(client, owner_context, viewer_context):
    _, _, owner_headers = owner_context
    _, _, headers = viewer_context
    data_set = _create(client, owner_headers)
    assert client.get(f"/datasets/{data_set['id']}", headers=headers).status_code == 200
    assert client.post("/datasets", json={"name": "X", "data_source_type": "SQL"}, headers=headers).status_code == 403
    record = client.post(f"/datasets/{data_set['id']}/records", json={"values": {"invoice_no": "1", "customer": "A"}}, headers=headers)
    assert record.status_code == 403
    assert client.delete(f"/datasets/{data_set['id']}", headers=headers).status_code == 403


def test_update_replaces_columns_and_keeps_secrets(client, owner_context):
    _, _, headers = owner_context
    data_set = _create(
        client,
        headers,
        data_source={"source_type": "SQL", "database_connection": "Server=db", "authentication_config": "{\"user\": \"sa\"}"},
    )
    response = client.put(
        f"/datasets/{data_set['id']}",
        json={
            "name": "Invoices 2026",
            "status": "Inactive",
            "columns": [{"column_name": "code", "data_type": "string", "is_primary_key": True}],
            "data_source": {"source_type": "SQL", "sql_query": "select 1", "authentication_config": ""},
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["name"] == "Invoices 2026"
    assert body["status"] == "Inactive"
    assert body["updated_by"] == "owner@example.com"
    assert [c["column_name"] for c in body["columns"]] == ["code"]
    assert body["data_source"]["sql_query"] == "select 1"
    assert body["data_source"]["has_database_connection"] is True
    assert body["data_source"]["has_authentication_config"] is False

    untouched = client.put(f"/datasets/{data_set['id']}", json={"description": "Renamed"}, headers=headers).json()
    assert [c["column_name"] for c in untouched["columns"]] == ["code"]

    bad_status = client.put(f"/datasets/{data_set['id']}", json={"status": "Broken"}, headers=headers)
    assert bad_status.status_code == 422


def test_record_lifecycle(client, owner_context):
    _, _, headers = owner_context
    data_set = _create(client, headers)
    created = _add_record(
        client, headers, data_set["id"], invoice_no="INV-1", customer="Acme", amount="120.50", paid="yes", issued_at="2026-03-01T09:00:00"
    )
    assert created["primary_key_value"] == "INV-1"
    values = created["values"]
    assert values["amount"] == 120.5
    assert values["items"] == 1
    assert values["paid"] is True
    assert values["issued_at"].startswith("2026-03-01T09:00:00")
    assert client.get(f"/datasets/{data_set['id']}", headers=headers).json()["total_records"] == 1

    updated = client.put(
        f"/datasets/{data_set['id']}/records/{created['id']}",
        json={"values": {"invoice_no": "INV-1", "customer": "Acme Ltd", "items": 4}, "status": "Checked"},
        headers=headers,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["values"] == {"invoice_no": "INV-1", "customer": "Acme Ltd", "items": 4}
    assert updated.json()["status"] == "Checked"

    deleted = client.delete(f"/datasets/{data_set['id']}/records/{created['id']}", headers=headers)
    assert deleted.status_code == 204
    assert client.get(f"/datasets/{data_set['id']}", headers=headers).json()["total_records"] == 0
    missing = client.delete(f"/datasets/{data_set['id']}/records/{created['id']}", headers=headers)
    assert missing.status_code == 404


def test_invalid_records_are_rejected(client, owner_context):
    _, _, headers = owner_context
    data_set = _create(client, headers)
    url = f"/datasets/{data_set['id']}/records"

    response = client.post(url, json={"values": {"customer": "x" * 51, "amount": "lots", "colour": "red"}}, headers=headers)
    assert response.status_code == 400
    errors = response.json()["detail"]["errors"]
    assert "Unknown column 'colour'" in errors
    assert "invoice_no is required" in errors
    assert "customer: longer than 50 characters" in errors
    assert "amount: 'lots' is not a number" in errors

    _add_record(client, headers, data_set["id"], invoice_no="INV-1", customer="Acme")
    conflict = client.post(url, json={"values": {"invoice_no": "INV-1", "customer": "Other"}}, headers=headers)
    assert conflict.status_code == 409


def test_list_records_filters_and_sorts(client, owner_context):
    _, _, headers = owner_context
    data_set = _create(client, headers)
    _seed_invoices(client, headers, data_set["id"])
    url = f"/datasets/{data_set['id']}/records"

    newest_first = client.get(url, headers=headers).json()
    assert [r["primary_key_value"] for r in newest_first["data"]] == ["INV-3", "INV-2", "INV-1"]
    assert newest_first["total"] == 3

    by_amount = client.get(url, params={"sort_by": "amount", "sort_order": "desc"}, headers=headers).json()
    assert [r["primary_key_value"] for r in by_amount["data"]] == ["INV-3", "INV-1", "INV-2"]

    by_key = client.get(url, params={"sort_by": "primary_key_value", "page_size": 2}, headers=headers).json()
    assert [r["primary_key_value"] for r in by_key["data"]] == ["INV-1", "INV-2"]
    assert by_key["total_pages"] == 2

    one = client.get(url, params={"search_key": "customer", "search_value": "Globex"}, headers=headers).json()
    assert [r["primary_key_value"] for r in one["data"]] == ["INV-2"]

    unknown = client.get(url, params={"search_key": "colour", "search_value": "red"}, headers=headers)
    assert unknown.status_code == 400


def test_search_records_with_conditions(client, owner_context):
    _, _, headers = owner_context
    data_set = _create(client, headers)
    _seed_invoices(client, headers, data_set["id"])
    url = f"/datasets/{data_set['id']}/records/search"

    def keys(conditions, **extra):
        response = client.post(url, json={"conditions": conditions, **extra}, headers=headers)
        assert response.status_code == 200, response.text
        return [r["primary_key_value"] for r in response.json()["data"]]

    assert keys([{"column_name": "customer", "operator": "contains", "value": "acme"}], sort_by="created_at", sort_order="asc") == ["INV-1", "INV-3"]
    assert keys([{"column_name": "amount", "operator": "greater_than", "value": "100"}], sort_by="amount") == ["INV-1", "INV-3"]
    assert keys([{"column_name": "items", "operator": "less_than", "value": 5}]) == ["INV-2", "INV-1"]
    assert keys([{"column_name": "paid", "operator": "equals", "value": "true"}]) == ["INV-1"]
    assert keys([{"column_name": "issued_at", "operator": "date_range", "value": "2026-03-01T00:00:00,2026-03-31T23:59:59"}], sort_by="issued_at") == ["INV-1", "INV-2"]
    assert keys([
        {"column_name": "customer", "operator": "contains", "value": "Acme"},
        {"column_name": "amount", "operator": "greater_than", "value": 200},
    ]) == ["INV-3"]

    bad_operator = client.post(url, json={"conditions": [{"column_name": "amount", "operator": "like", "value": "1"}]}, headers=headers)
    assert bad_operator.status_code == 400
    wrong_type = client.post(url, json={"conditions": [{"column_name": "customer", "operator": "greater_than", "value": "1"}]}, headers=headers)
    assert wrong_type.status_code == 400
    bad_value = client.post(url, json={"conditions": [{"column_name": "issued_at", "operator": "date_range", "value": "yesterday"}]}, headers=headers)
    assert bad_value.status_code == 400


def test_delete_data_set_removes_records(client, owner_context, db_session):
    _, _, headers = owner_context
    data_set = _create(client, headers)
    _add_record(client, headers, data_set["id"], invoice_no="INV-1", customer="Acme")
    assert client.delete(f"/datasets/{data_set['id']}", headers=headers).status_code == 204
    assert client.get(f"/datasets/{data_set['id']}", headers=headers).status_code == 404
    assert client.get(f"/datasets/{data_set['id']}/records", headers=headers).status_code == 404
    db_session.expire_all()
    assert db_session.query(models.DataSetRecordValue).count() == 0
