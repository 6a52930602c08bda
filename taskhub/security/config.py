from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from taskhub.models import GlobalRole, ProjectRole


class ResolutionStrategy(str, enum.Enum):
    """How a route exposes the project it targets."""

    DIRECT = "direct"
    BODY_FIELD = "body_field"
    TASK_INDIRECTED = "task_indirected"


_DEFAULT_FIELDS: dict[ResolutionStrategy, str] = {
    ResolutionStrategy.DIRECT: "project_id",
    ResolutionStrategy.BODY_FIELD: "project_id",
    ResolutionStrategy.TASK_INDIRECTED: "task_id",
}


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"


class AuthorizationConfig(BaseModel):
    # When true, a global admin reaches any existing project even without a membership.
    admin_bypasses_membership: bool = False


class DefaultRule(BaseModel):
    auth_required: bool = True
    required_roles: list[GlobalRole] = Field(default_factory=list)


class ProjectRefModel(BaseModel):
    strategy: ResolutionStrategy
    field: str | None = None


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])

    auth_required: bool | None = None
    required_roles: list[GlobalRole] = Field(default_factory=list)

    project_roles: list[ProjectRole] = Field(default_factory=list)
    project_ref: ProjectRefModel | None = None

    @model_validator(mode="after")
    def _project_rule_is_complete(self) -> RouteRule:
        if bool(self.project_roles) != (self.project_ref is not None):
            raise ValueError(
                f"Route {self.path!r}: 'project_roles' and 'project_ref' must be declared together"
            )
        if self.auth_required is False and (self.project_roles or self.required_roles):
            raise ValueError(f"Route {self.path!r}: role requirements need 'auth_required'")
        return self

    def normalized_methods(self) -> set[str]:
        return {m.upper() for m in self.methods}


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    authorization: AuthorizationConfig = Field(default_factory=AuthorizationConfig)
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class ProjectReference:
    """Statically declared way to find the project id for one route."""

    strategy: ResolutionStrategy
    field: str

    @classmethod
    def of(cls, strategy: ResolutionStrategy, field: str | None = None) -> ProjectReference:
        return cls(strategy=strategy, field=field or _DEFAULT_FIELDS[strategy])


@dataclass(frozen=True)
class EffectiveRule:
    """
    Fully-resolved rule (defaults applied) for a particular route + method.
    """

    auth_required: bool
    required_roles: frozenset[GlobalRole]
    project_roles: frozenset[ProjectRole]
    project_ref: ProjectReference | None


class SecurityConfig:
    """
    Runtime helper around validated config + route lookup.

    Rules are keyed by the route *template* FastAPI matched (e.g. ``/tasks/{task_id}``),
    so the lookup is an exact dict hit rather than pattern matching on the raw URL.
    """

    def __init__(self, model: SecurityConfigModel):
        self.model = model

        self._rules: dict[tuple[str, str], RouteRule] = {}
        for rule in self.model.routes:
            for method in rule.normalized_methods():
                key = (rule.path, method)
                if key in self._rules:
                    raise ValueError(f"Duplicate security rule for {method} {rule.path}")
                self._rules[key] = rule

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    @property
    def admin_bypasses_membership(self) -> bool:
        return self.model.authorization.admin_bypasses_membership

    def match(self, route_path: str, method: str) -> EffectiveRule:
        default = self.model.default
        rule = self._rules.get((route_path, method.upper()))
        if rule is None:
            return EffectiveRule(
                auth_required=default.auth_required,
                required_roles=frozenset(default.required_roles),
                project_roles=frozenset(),
                project_ref=None,
            )
        return _effective(rule, default)

    def unknown_paths(self, route_paths: Iterable[str]) -> list[str]:
        """Rule paths that no registered route declares (typos, stale entries)."""

        known = set(route_paths)
        return sorted({rule.path for rule in self.model.routes if rule.path not in known})


def _effective(rule: RouteRule, default: DefaultRule) -> EffectiveRule:
    # Any role requirement implies authentication, even if the global default is "public".
    inferred_auth_required = default.auth_required or bool(rule.required_roles) or bool(rule.project_roles)

    project_ref = None
    if rule.project_ref is not None:
        project_ref = ProjectReference.of(rule.project_ref.strategy, rule.project_ref.field)

    return EffectiveRule(
        auth_required=inferred_auth_required if rule.auth_required is None else rule.auth_required,
        required_roles=frozenset(rule.required_roles or default.required_roles),
        project_roles=frozenset(rule.project_roles),
        project_ref=project_ref,
    )


def load_security_config(path: Path) -> SecurityConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "security" not in raw:
        raise ValueError(f"Missing top-level 'security' key in config: {path}")

    model = SecurityConfigModel.model_validate(raw["security"])
    return SecurityConfig(model)
