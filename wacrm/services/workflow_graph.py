"""Workflow designer graph catalogue and shape validation."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

NODE_TYPES: List[Dict[str, Any]] = [
    {
        "type": "start",
        "label": "Start",
        "category": "control",
        "description": "Entry point; activated manually, by webhook or on a schedule.",
        "default_data": {
            "taskName": "Start",
            "activationType": "manual",
            "webhookToken": "",
            "webhookUrl": "",
            "scheduledTable": "",
            "scheduledQuery": "",
            "scheduledInterval": 300,
        },
    },
    {
        "type": "sendWhatsApp",
        "label": "Send WhatsApp Message",
        "category": "messaging",
        "description": "Send a free-form text message.",
        "default_data": {"taskName": "Send WhatsApp Message", "message": "", "to": ""},
    },
    {
        "type": "sendWhatsAppTemplate",
        "label": "Send WhatsApp Template",
        "category": "messaging",
        "description": "Send an approved message template.",
        "default_data": {"taskName": "Send WhatsApp Template", "templateId": "", "templateName": "", "variables": {}},
    },
    {
        "type": "waitReply",
        "label": "Wait for User Reply",
        "category": "interaction",
        "description": "Pause until the initiator or specified users reply.",
        "default_data": {
            "taskName": "Wait for User Reply",
            "replyType": "initiator",
            "specifiedUsers": "",
            "message": "Please enter your reply",
            "validation": {
                "enabled": True,
                "validatorType": "default",
                "prompt": "Please enter valid content",
                "retryMessage": "Input incorrect, please retry",
                "maxRetries": 3,
            },
        },
    },
    {
        "type": "waitForQRCode",
        "label": "Wait for QR Code",
        "category": "interaction",
        "description": "Pause until the user sends an image containing a QR code.",
        "default_data": {
            "taskName": "Wait for QR Code",
            "message": "Please send the QR code image",
            "qrCodeSuccessMessage": "",
            "qrCodeErrorMessage": "",
        },
    },
    {
        "type": "sendEForm",
        "label": "Send eForm",
        "category": "interaction",
        "description": "Send an e-form and wait for it to be submitted.",
        "default_data": {
            "taskName": "Send eForm",
            "formName": "",
            "formId": "",
            "formDescription": "",
            "to": "",
            "approvalResultVariable": "",
        },
    },
    {
        "type": "dbQuery",
        "label": "Query / Update Data",
        "category": "data",
        "description": "Select, insert or update records in a data set.",
        "default_data": {
            "taskName": "Query / Update Data",
            "dataSetId": "",
            "operationType": "SELECT",
            "queryConditionGroups": [],
            "operationData": {},
            "mappedFields": [],
        },
    },
    {
        "type": "callApi",
        "label": "Call External API",
        "category": "data",
        "description": "Invoke an external HTTP endpoint.",
        "default_data": {"taskName": "Call External API", "url": ""},
    },
    {
        "type": "switch",
        "label": "Switch",
        "category": "control",
        "description": "Branch on conditions over process variables.",
        "default_data": {"taskName": "Switch", "conditions": [], "defaultPath": ""},
    },
    {
        "type": "end",
        "label": "End",
        "category": "control",
        "description": "Terminates the workflow.",
        "default_data": {"taskName": "End"},
    },
]

SUPPORTED_NODE_TYPES = frozenset(node["type"] for node in NODE_TYPES)


def validate_workflow_json(document: Any) -> Tuple[bool, List[str]]:
    """Check the designer graph shape; returns ``(valid, errors)``."""
    if not isinstance(document, dict):
        return False, ["Workflow JSON must be an object"]
    errors: List[str] = []
    nodes = document.get("nodes")
    edges = document.get("edges")
    if not isinstance(nodes, list):
        errors.append("'nodes' must be a list")
        nodes = []
    if not isinstance(edges, list):
        errors.append("'edges' must be a list")
        edges = []

    node_ids = set()
    start_count = 0
    for index, node in enumerate(nodes):
        if not isinstance(node, dict):
            errors.append(f"Node[{index}] must be an object")
            continue
        node_id = node.get("id")
        if node_id is None or str(node_id).strip() == "":
            errors.append(f"Node[{index}] is missing an id")
        elif str(node_id) in node_ids:
            errors.append(f"Duplicate node id '{node_id}'")
        else:
            node_ids.add(str(node_id))
        node_type = node.get("type")
        if not isinstance(node_type, str):
            errors.append(f"Node[{index}] type must be a string")
        elif node_type not in SUPPORTED_NODE_TYPES:
            errors.append(f"Node[{index}] has unsupported type '{node_type}'")
        elif node_type == "start":
            start_count += 1

    if isinstance(document.get("nodes"), list):
        if start_count == 0:
            errors.append("Workflow must contain a start node")
        elif start_count > 1:
            errors.append("Workflow must contain exactly one start node")

    for index, edge in enumerate(edges):
        if not isinstance(edge, dict):
            errors.append(f"Edge[{index}] must be an object")
            continue
        for end in ("source", "target"):
            ref = edge.get(end)
            if ref is None or str(ref) not in node_ids:
                errors.append(f"Edge[{index}] {end} '{ref}' does not reference an existing node")

    return not errors, errors
