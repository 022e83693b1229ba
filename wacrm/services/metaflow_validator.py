"""
Structural validation for WhatsApp Flow (MetaFlow) documents.

``validate_metaflow_json`` is a pure function returning every problem it
finds so the designer can show them all at once.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

IDENTIFIER_RE = re.compile(r"^[a-zA-Z_]+$")
SCREEN_LAYOUT = "SingleColumnLayout"
CLICK_ACTIONS: FrozenSet[str] = frozenset({"data_exchange", "navigate", "open_url", "complete"})
PHOTO_SOURCES: FrozenSet[str] = frozenset({"camera_gallery", "camera", "gallery"})
SELECT_ACTIONS: FrozenSet[str] = frozenset({"update_data", "data_exchange"})


@dataclass(frozen=True)
class ComponentSpec:
    identifier: Optional[str] = None  # "id" | "name" | None
    required: Tuple[str, ...] = ()
    forbidden: Tuple[str, ...] = ()
    action_field: Optional[str] = None  # "on-click-action" | "on-select-action"
    allowed_actions: FrozenSet[str] = field(default_factory=frozenset)


_TEXT = ComponentSpec(required=("text",))
_PICKER_FORBIDDEN = ("id", "on-click-action", "on-select-action")
_SELECTION = ComponentSpec(
    identifier="name",
    required=("name", "label", "data-source"),
    forbidden=("id", "options", "on-click-action"),
    action_field="on-select-action",
    allowed_actions=SELECT_ACTIONS,
)
_DATE = ComponentSpec(
    identifier="name",
    required=("name", "label"),
    forbidden=("id", "placeholder", "on-click-action"),
    action_field="on-select-action",
    allowed_actions=SELECT_ACTIONS,
)

COMPONENT_SPECS: Dict[str, ComponentSpec] = {
    "TextHeading": _TEXT,
    "TextSubheading": _TEXT,
    "TextBody": _TEXT,
    "TextCaption": _TEXT,
    "RichText": _TEXT,
    "Footer": ComponentSpec(
        required=("label", "on-click-action"),
        action_field="on-click-action",
        allowed_actions=frozenset({"complete", "navigate", "data_exchange"}),
    ),
    "TextEntry": ComponentSpec(
        identifier="id",
        required=("id", "label"),
        action_field="on-click-action",
        allowed_actions=frozenset({"data_exchange", "navigate"}),
    ),
    "TextInput": ComponentSpec(
        identifier="name",
        required=("name", "label"),
        forbidden=("id", "placeholder", "on-click-action"),
    ),
    "TextArea": ComponentSpec(
        identifier="name",
        required=("name", "label"),
        forbidden=("id", "placeholder", "on-click-action"),
    ),
    "Dropdown": _SELECTION,
    "CheckboxGroup": _SELECTION,
    "RadioButtonsGroup": _SELECTION,
    "ChipsSelector": ComponentSpec(
        identifier="name",
        required=("name", "label", "data-source"),
        forbidden=("id", "options", "on-click-action"),
        action_field="on-select-action",
        allowed_actions=frozenset({"update_data", "data_exchange", "navigate"}),
    ),
    "DatePicker": _DATE,
    "CalendarPicker": _DATE,
    "PhotoPicker": ComponentSpec(identifier="name", required=("name", "label"), forbidden=_PICKER_FORBIDDEN),
    "DocumentPicker": ComponentSpec(identifier="name", required=("name", "label"), forbidden=_PICKER_FORBIDDEN),
    "Image": ComponentSpec(required=("src",), forbidden=("id", "url", "alt", "on-click-action")),
    "ImageCarousel": ComponentSpec(required=("images",)),
    "EmbeddedLink": ComponentSpec(
        required=("text", "on-click-action"),
        action_field="on-click-action",
        allowed_actions=frozenset({"open_url", "navigate", "data_exchange"}),
    ),
    "OptIn": ComponentSpec(
        identifier="name",
        required=("name", "label"),
        action_field="on-click-action",
        allowed_actions=frozenset({"open_url", "navigate", "data_exchange"}),
    ),
    "If": ComponentSpec(required=("condition", "then")),
    "Switch": ComponentSpec(required=("value", "cases")),
    "NavigationList": ComponentSpec(identifier="id", required=("id", "list-items")),
    "Form": ComponentSpec(identifier="name", required=("name", "children")),
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_spec(component: Dict[str, Any], spec: ComponentSpec) -> List[str]:
    errors: List[str] = []
    for name in spec.required:
        if name not in component:
            errors.append(f"missing required field '{name}'")
        elif _is_blank(component[name]):
            errors.append(f"required field '{name}' must not be empty")
    for name in spec.forbidden:
        if name in component:
            errors.append(f"field '{name}' is not allowed")
    if spec.identifier:
        value = component.get(spec.identifier)
        if isinstance(value, str) and value.strip() and not IDENTIFIER_RE.match(value):
            errors.append(f"{spec.identifier} '{value}' may only contain letters and underscores")
        elif value is not None and not isinstance(value, str):
            errors.append(f"{spec.identifier} must be a string")
    if spec.action_field:
        action = component.get(spec.action_field)
        if isinstance(action, dict):
            action_name = action.get("name")
            if not action_name:
                errors.append(f"{spec.action_field} must have a name")
            elif not isinstance(action_name, str):
                errors.append(f"{spec.action_field}.name must be a string")
            elif spec.action_field == "on-click-action" and action_name not in CLICK_ACTIONS:
                pass  # reported by _check_click_action
            elif action_name not in spec.allowed_actions:
                allowed = ", ".join(sorted(spec.allowed_actions))
                errors.append(f"{spec.action_field}.name '{action_name}' is invalid; allowed: {allowed}")
        elif action is not None:
            errors.append(f"{spec.action_field} must be an object")
    return errors


def _check_click_action(action: Any, screen_ids: Set[str]) -> List[str]:
    if not isinstance(action, dict):
        return ["on-click-action must be an object"]
    name = action.get("name")
    if not name:
        return ["on-click-action must have a name"]
    if not isinstance(name, str):
        return ["on-click-action.name must be a string"]
    if name not in CLICK_ACTIONS:
        return [f"on-click-action.name '{name}' is invalid; must be one of: {', '.join(sorted(CLICK_ACTIONS))}"]
    if name != "navigate":
        return []
    target = action.get("next")
    if not isinstance(target, dict):
        return ["navigate action requires next as an object {name, type: \"screen\"}"]
    errors: List[str] = []
    target_name = target.get("name")
    if not isinstance(target_name, str) or not target_name:
        errors.append("navigate next.name must be a string")
    elif target_name not in screen_ids:
        errors.append(f"navigate next.name '{target_name}' does not match any screen id")
    if target.get("type") != "screen":
        errors.append("navigate next.type must be \"screen\"")
    return errors


def _check_picker(component: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    kind = component.get("type")
    if kind == "PhotoPicker":
        low, high = component.get("min-uploaded-photos"), component.get("max-uploaded-photos")
        if isinstance(low, (int, float)) and isinstance(high, (int, float)) and low > high:
            errors.append("min-uploaded-photos must not exceed max-uploaded-photos")
        source = component.get("photo-source")
        if source is not None and (not isinstance(source, str) or source not in PHOTO_SOURCES):
            errors.append("photo-source must be one of camera_gallery, camera, gallery")
    elif kind == "DocumentPicker":
        low, high = component.get("min-uploaded-documents"), component.get("max-uploaded-documents")
        if isinstance(low, (int, float)) and isinstance(high, (int, float)) and low > high:
            errors.append("min-uploaded-documents must not exceed max-uploaded-documents")
    return errors


def _nested_children(component: Dict[str, Any]) -> List[Tuple[str, Any]]:
    kind = component.get("type")
    if kind == "Form":
        return [("children", component.get("children"))]
    if kind == "If":
        return [("then", component.get("then")), ("else", component.get("else"))]
    if kind == "Switch":
        cases = component.get("cases")
        if isinstance(cases, dict):
            return [(f"cases.{key}", value) for key, value in cases.items()]
    return []


def _validate_components(children: Any, path: str, screen_ids: Set[str], errors: List[str]) -> None:
    if children is None:
        return
    if not isinstance(children, list):
        errors.append(f"{path}: must be a list of components")
        return
    for index, component in enumerate(children):
        where = f"{path}[{index}]"
        if not isinstance(component, dict):
            errors.append(f"{where}: component must be an object")
            continue
        kind = component.get("type")
        if not kind:
            errors.append(f"{where}: missing type")
            continue
        if not isinstance(kind, str):
            errors.append(f"{where}: type must be a string")
            continue
        spec = COMPONENT_SPECS.get(kind)
        if spec is None:
            errors.append(f"{where}: unsupported component type '{kind}'")
            continue
        label = f"{where} ({kind})"
        problems = _check_spec(component, spec) + _check_picker(component)
        if "on-click-action" in component and "on-click-action" not in spec.forbidden:
            problems.extend(_check_click_action(component["on-click-action"], screen_ids))
        errors.extend(f"{label}: {problem}" for problem in dict.fromkeys(problems))
        for suffix, nested in _nested_children(component):
            _validate_components(nested, f"{label}.{suffix}", screen_ids, errors)


def _count_types(children: Any, kinds: Set[str]) -> Dict[str, int]:
    """Count components of ``kinds`` anywhere under ``children``, nested containers included."""
    counts = {kind: 0 for kind in kinds}
    stack = list(children) if isinstance(children, list) else []
    while stack:
        component = stack.pop()
        if not isinstance(component, dict):
            continue
        kind = component.get("type")
        if isinstance(kind, str) and kind in counts:
            counts[kind] += 1
        for _, nested in _nested_children(component):
            if isinstance(nested, list):
                stack.extend(nested)
    return counts


def validate_metaflow_json(document: Any) -> Tuple[bool, List[str]]:
    """Validate a MetaFlow document (dict or JSON text); returns ``(valid, errors)``."""
    errors: List[str] = []
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            return False, [f"Invalid JSON: {exc.msg}"]
    if not isinstance(document, dict):
        return False, ["Flow document must be a JSON object"]

    version = document.get("version")
    if version is None:
        errors.append("missing required field 'version'")
    elif not isinstance(version, str):
        errors.append("version must be a string")

    screens = document.get("screens")
    if screens is None:
        errors.append("missing required field 'screens'")
        return False, errors
    if not isinstance(screens, list):
        errors.append("screens must be a list")
        return False, errors
    if not screens:
        errors.append("screens must not be empty")
        return False, errors

    screen_ids = {s.get("id") for s in screens if isinstance(s, dict) and isinstance(s.get("id"), str)}
    for index, screen in enumerate(screens):
        where = f"Screen[{index}]"
        if not isinstance(screen, dict):
            errors.append(f"{where}: must be an object")
            continue
        screen_id = screen.get("id")
        if not screen_id:
            errors.append(f"{where}: missing id")
        elif not isinstance(screen_id, str):
            errors.append(f"{where}: id must be a string")
        elif not IDENTIFIER_RE.match(screen_id):
            errors.append(f"{where}: id '{screen_id}' may only contain letters and underscores")

        layout = screen.get("layout")
        if not isinstance(layout, dict):
            errors.append(f"{where}: missing layout")
            continue
        if layout.get("type") != SCREEN_LAYOUT:
            errors.append(f"{where}: layout.type must be \"{SCREEN_LAYOUT}\"")
        children = layout.get("children")
        if not isinstance(children, list) or not children:
            errors.append(f"{where}: layout.children must be a non-empty list")
            continue
        if not any(isinstance(c, dict) and c.get("type") == "TextBody" for c in children):
            errors.append(f"{where}: must contain at least one TextBody")

        pickers = _count_types(children, {"PhotoPicker", "DocumentPicker"})
        if pickers["PhotoPicker"] > 1:
            errors.append(f"{where}: only one PhotoPicker is allowed per screen")
        if pickers["DocumentPicker"] > 1:
            errors.append(f"{where}: only one DocumentPicker is allowed per screen")
        if pickers["PhotoPicker"] and pickers["DocumentPicker"]:
            errors.append(f"{where}: PhotoPicker and DocumentPicker cannot be used on the same screen")

        _validate_components(children, f"{where}.children", screen_ids, errors)

    return not errors, errors
