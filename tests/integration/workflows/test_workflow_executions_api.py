import pytest

from wacrm.utils.feature_flags import refresh_feature_flag_cache

from tests.helpers import valid_workflow_graph


@pytest.fixture
def execution(client, owner_context):
    _, _, headers = owner_context
    definition = client.post(
        "/workflow-definitions", json={"name": "Survey", "json": valid_workflow_graph()}, headers=headers
    ).json()
    return client.post(f"/workflow-definitions/{definition['id']}/start", headers=headers).json()


def test_list_executions(client, owner_context, execution):
    _, _, headers = owner_context
    body = client.get("/workflow-executions", headers=headers).json()
    assert body["total"] == 1
    assert body["data"][0]["workflow_name"] == "Survey"
    assert client.get("/workflow-executions", params={"status": "Completed"}, headers=headers).json()["total"] == 0


def test_waiting_step_and_resume(client, owner_context, execution):
    _, _, headers = owner_context
    url = f"/workflow-executions/{execution['id']}"
    waiting = client.post(
        f"{url}/steps",
        json={"step_type": "waitReply", "status": "Waiting", "is_waiting": True, "waiting_for_user": "60123"},
        headers=headers,
    )
    assert waiting.status_code == 200
    assert waiting.json()["step_index"] == 1
    detail = client.get(url, headers=headers).json()
    assert detail["status"] == "Waiting"
    assert detail["is_waiting"] is True
    assert detail["waiting_for_user"] == "60123"
    assert detail["current_waiting_step"] == 1

    resumed = client.post(f"{url}/steps", json={"step_type": "sendWhatsApp"}, headers=headers)
    assert resumed.json()["step_index"] == 2
    detail = client.get(url, headers=headers).json()
    assert detail["status"] == "Running"
    assert detail["is_waiting"] is False
    assert detail["waiting_for_user"] is None
    assert [s["step_type"] for s in detail["steps"]] == ["start", "waitReply", "sendWhatsApp"]


def test_complete_execution(client, owner_context, execution):
    _, _, headers = owner_context
    url = f"/workflow-executions/{execution['id']}"
    done = client.post(f"{url}/complete", json={"output_json": {"answer": "yes"}}, headers=headers)
    assert done.status_code == 200
    assert done.json()["status"] == "Completed"
    assert done.json()["ended_at"] is not None
    assert done.json()["output_json"] == {"answer": "yes"}
    assert client.post(f"{url}/steps", json={"step_type": "end"}, headers=headers).status_code == 400
    assert client.post(f"{url}/cancel", headers=headers).status_code == 400


def test_fail_execution_defaults_message(client, owner_context, execution):
    _, _, headers = owner_context
    failed = client.post(f"/workflow-executions/{execution['id']}/fail", headers=headers).json()
    assert failed["status"] == "Failed"
    assert failed["error_message"] == "Execution failed"


def test_cancel_execution(client, owner_context, execution):
    _, _, headers = owner_context
    cancelled = client.post(f"/workflow-executions/{execution['id']}/cancel", headers=headers).json()
    assert cancelled["status"] == "Cancelled"
    board = client.get("/workflow-executions/kanban", headers=headers).json()
    assert board["counts"]["failed"] == 1


def test_kanban_board(client, owner_context, execution):
    _, _, headers = owner_context
    board = client.get("/workflow-executions/kanban", params={"hours": 2}, headers=headers).json()
    assert board["counts"] == {"running": 1, "waiting": 0, "completed": 0, "failed": 0}
    assert board["columns"]["running"][0]["workflow_name"] == "Survey"


def test_kanban_disabled(client, owner_context, monkeypatch):
    _, _, headers = owner_context
    monkeypatch.setenv("REALTIME_REPORTS_ENABLED", "0")
    refresh_feature_flag_cache()
    assert client.get("/workflow-executions/kanban", headers=headers).status_code == 503


def test_unknown_execution(client, owner_context):
    _, _, headers = owner_context
    assert client.get("/workflow-executions/999", headers=headers).status_code == 404


def test_viewer_cannot_drive_executions(client, viewer_context, execution):
    _, _, headers = viewer_context
    assert client.get(f"/workflow-executions/{execution['id']}", headers=headers).status_code == 200
    assert client.post(f"/workflow-executions/{execution['id']}/cancel", headers=headers).status_code == 403
