from wacrm.services.workflow_graph import NODE_TYPES, SUPPORTED_NODE_TYPES, validate_workflow_json

from tests.helpers import valid_workflow_graph


def test_catalogue_types_are_unique():
    types = [node["type"] for node in NODE_TYPES]
    assert len(types) == len(set(types))
    assert {"start", "end", "sendWhatsApp", "waitReply", "switch"} <= SUPPORTED_NODE_TYPES


def test_valid_graph():
    assert validate_workflow_json(valid_workflow_graph()) == (True, [])


def test_non_object_document():
    valid, errors = validate_workflow_json(["nodes"])
    assert valid is False
    assert errors == ["Workflow JSON must be an object"]


def test_missing_lists_are_reported():
    valid, errors = validate_workflow_json({})
    assert valid is False
    assert "'nodes' must be a list" in errors
    assert "'edges' must be a list" in errors


def test_start_node_rules():
    graph = valid_workflow_graph()
    graph["nodes"] = [n for n in graph["nodes"] if n["type"] != "start"]
    graph["edges"] = []
    valid, errors = validate_workflow_json(graph)
    assert not valid
    assert "Workflow must contain a start node" in errors

    graph = valid_workflow_graph()
    graph["nodes"].append({"id": "start-2", "type": "start"})
    valid, errors = validate_workflow_json(graph)
    assert "Workflow must contain exactly one start node" in errors


def test_duplicate_ids_unknown_types_and_dangling_edges():
    graph = valid_workflow_graph()
    graph["nodes"].append({"id": "send-1", "type": "teleport"})
    graph["edges"].append({"source": "end-1", "target": "nowhere"})
    valid, errors = validate_workflow_json(graph)
    assert not valid
    assert "Duplicate node id 'send-1'" in errors
    assert any("unsupported type 'teleport'" in e for e in errors)
    assert any("target 'nowhere'" in e for e in errors)


def test_non_string_node_type_is_reported():
    graph = valid_workflow_graph()
    graph["nodes"][1]["type"] = ["sendWhatsApp"]
    valid, errors = validate_workflow_json(graph)
    assert not valid
    assert "Node[1] type must be a string" in errors
