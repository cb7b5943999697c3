"""Bundle descriptor types and validation.

Descriptors use camelCase keys (``dashboardWidgets``, ``memoryCategories``,
``createdAt``); the dataclasses use snake_case. Keys a descriptor carries
that these types do not model are kept in ``extra`` so nothing is lost
on a round trip.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from bundlestack.errors import ValidationError

BundleType = Literal["official", "community", "custom"]

_REQUIRED_FIELDS = ("id", "name", "type")
_REQUIRED_ARRAYS = ("agents", "skills", "automations", "dashboardWidgets", "memoryCategories")


def _split(data: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


@dataclass
class AgentSpec:
    """An agent a bundle contributes to the stack. ``role`` must be unique across the stack."""

    role: str
    name: str = ""
    description: str = ""
    model: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("role", "name", "description", "model")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AgentSpec:
        return cls(
            role=data["role"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            model=data.get("model"),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extra)
        out.update(role=self.role, name=self.name, description=self.description)
        if self.model is not None:
            out["model"] = self.model
        return out


@dataclass
class AutomationSpec:
    """A trigger/action pair. ``trigger`` holds ``type`` plus ``schedule``, ``event`` or ``path``."""

    trigger: dict[str, Any]
    id: str = ""
    name: str = ""
    description: str = ""
    action: str = ""
    enabled: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("trigger", "id", "name", "description", "action", "enabled")

    @property
    def trigger_type(self) -> str:
        return self.trigger.get("type", "")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AutomationSpec:
        return cls(
            trigger=dict(data.get("trigger") or {}),
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            action=data.get("action", ""),
            enabled=bool(data.get("enabled", True)),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extra)
        out.update(
            id=self.id,
            name=self.name,
            description=self.description,
            trigger=dict(self.trigger),
            action=self.action,
            enabled=self.enabled,
        )
        return out


@dataclass
class WidgetSpec:
    """A dashboard widget declaration (rendered by the presentation layer)."""

    type: str = ""
    title: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("type", "title")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WidgetSpec:
        return cls(
            type=data.get("type", ""),
            title=data.get("title", ""),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extra)
        out.update(type=self.type, title=self.title)
        return out


@dataclass
class Bundle:
    """A capability bundle: agents, skills, automations, widgets and memory categories."""

    id: str
    name: str
    type: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    author: str | None = None
    agents: list[AgentSpec] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    automations: list[AutomationSpec] = field(default_factory=list)
    dashboard_widgets: list[WidgetSpec] = field(default_factory=list)
    memory_categories: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Bundle:
        """Build a Bundle from a validated descriptor. Missing dates default to now."""
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            description=data.get("description") or "",
            tags=[str(t) for t in data.get("tags") or []],
            author=data.get("author"),
            agents=[AgentSpec.from_dict(a) for a in data["agents"]],
            skills=[str(s) for s in data["skills"]],
            automations=[AutomationSpec.from_dict(a) for a in data["automations"]],
            dashboard_widgets=[WidgetSpec.from_dict(w) for w in data["dashboardWidgets"]],
            memory_categories=[str(c) for c in data["memoryCategories"]],
            created_at=parse_timestamp(data.get("createdAt"), "createdAt"),
            updated_at=parse_timestamp(data.get("updatedAt"), "updatedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Render back to the camelCase descriptor format."""
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "tags": list(self.tags),
            "agents": [a.to_dict() for a in self.agents],
            "skills": list(self.skills),
            "automations": [a.to_dict() for a in self.automations],
            "dashboardWidgets": [w.to_dict() for w in self.dashboard_widgets],
            "memoryCategories": list(self.memory_categories),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.author is not None:
            out["author"] = self.author
        return out

    @property
    def roles(self) -> list[str]:
        return [a.role for a in self.agents]


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 value. ``None`` means "now"; YAML/TOML may hand us dates already."""
    if value is None or value == "":
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError(field_name, f"Bundle {field_name} is not an ISO-8601 timestamp: {value!r}")


def _check_optional_string(data: Mapping[str, Any], key: str) -> None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(key, f"Bundle {key} must be a string")


def validate_descriptor(data: Any) -> None:
    """Check required fields in order; raise ValidationError naming the first bad one."""
    if not isinstance(data, Mapping):
        raise ValidationError("descriptor", "Bundle descriptor must be an object")

    for key in _REQUIRED_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise ValidationError(key)

    for key in _REQUIRED_ARRAYS:
        if not isinstance(data.get(key), list):
            raise ValidationError(key, f"Bundle must have {key} array")

    for i, agent in enumerate(data["agents"]):
        if isinstance(agent, AgentSpec):
            role = agent.role
        elif isinstance(agent, Mapping):
            role = agent.get("role")
        else:
            role = None
        if not isinstance(role, str) or not role:
            raise ValidationError(f"agents[{i}].role", f"Bundle agent #{i} must have a role")

    for key, spec_type in (("automations", AutomationSpec), ("dashboardWidgets", WidgetSpec)):
        for i, item in enumerate(data[key]):
            if not isinstance(item, (Mapping, spec_type)):
                raise ValidationError(f"{key}[{i}]", f"Bundle {key} entry #{i} must be an object")

    for i, item in enumerate(data["automations"]):
        trigger = item.trigger if isinstance(item, AutomationSpec) else item.get("trigger")
        if trigger is not None and not isinstance(trigger, Mapping):
            raise ValidationError(
                f"automations[{i}].trigger", f"Bundle automation #{i} trigger must be an object"
            )

    _check_optional_string(data, "description")
    _check_optional_string(data, "author")
    tags = data.get("tags")
    if tags is not None and not (isinstance(tags, list) and all(isinstance(t, str) for t in tags)):
        raise ValidationError("tags", "Bundle tags must be a list of strings")


def build_bundle(data: Any) -> Bundle:
    """Validate a parsed descriptor and build the Bundle.

    Any failure while building is reported as a ValidationError.
    """
    validate_descriptor(data)
    try:
        return Bundle.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError("descriptor", f"Bundle descriptor is malformed: {e}") from e


def validate_bundle(bundle: Bundle) -> None:
    """Apply descriptor validation to an already-built Bundle."""
    validate_descriptor(
        {
            "id": bundle.id,
            "name": bundle.name,
            "type": bundle.type,
            "description": bundle.description,
            "tags": bundle.tags,
            "author": bundle.author,
            "agents": bundle.agents,
            "skills": bundle.skills,
            "automations": bundle.automations,
            "dashboardWidgets": bundle.dashboard_widgets,
            "memoryCategories": bundle.memory_categories,
        }
    )
