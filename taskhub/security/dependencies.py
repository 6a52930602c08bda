from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from taskhub.db.session import get_db
from taskhub.security.auth import extract_bearer_token, load_principal, verify_credential
from taskhub.security.config import EffectiveRule, ResolutionStrategy, SecurityConfig
from taskhub.security.context import AuthorizationContext, Principal
from taskhub.security.locator import TaskLocator
from taskhub.security.membership import MembershipIndex
from taskhub.security.resolver import authorize
from taskhub.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def route_rule(request: Request, config: SecurityConfig = Depends(get_security_config)) -> EffectiveRule:
    """
    Look up the rule for the route FastAPI matched.

    Runs after routing, so the declared template (``/tasks/{task_id}``) is available and
    the rule is found by exact key, never by inspecting the concrete URL.
    """

    route = request.scope.get("route")
    route_path = getattr(route, "path", None) or request.url.path
    return config.match(route_path, request.method)


def authenticate(
    request: Request,
    rule: EffectiveRule = Depends(route_rule),
    config: SecurityConfig = Depends(get_security_config),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Principal | None:
    if not rule.auth_required:
        return None

    token = extract_bearer_token(request, config)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    principal = load_principal(db, verify_credential(token, settings))

    if rule.required_roles and principal.global_role not in rule.required_roles:
        logger.info("Insufficient global role user_id=%s path=%s", principal.id, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role. Required one of: {sorted(r.value for r in rule.required_roles)}",
        )

    return principal


async def project_body_fields(request: Request, rule: EffectiveRule = Depends(route_rule)) -> dict[str, Any]:
    """
    Body fields for routes that declare their project id in the body.

    Starlette caches the parsed JSON, so the handler's own body parsing is unaffected.
    """

    ref = rule.project_ref
    if ref is None or ref.strategy is not ResolutionStrategy.BODY_FIELD:
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    return {ref.field: body.get(ref.field)}


def resolve_authorization(
    request: Request,
    rule: EffectiveRule = Depends(route_rule),
    config: SecurityConfig = Depends(get_security_config),
    principal: Principal | None = Depends(authenticate),
    body_fields: dict[str, Any] = Depends(project_body_fields),
    db: Session = Depends(get_db),
) -> AuthorizationContext | None:
    if rule.project_ref is None or principal is None:
        return None

    params: dict[str, Any] = {**request.path_params, **body_fields}
    return authorize(
        rule.project_ref,
        params,
        principal,
        rule.project_roles,
        memberships=MembershipIndex(db),
        tasks=TaskLocator(db),
        admin_bypasses_membership=config.admin_bypasses_membership,
    )


def enforce_security(
    principal: Principal | None = Depends(authenticate),
    authz: AuthorizationContext | None = Depends(resolve_authorization),
) -> None:
    """
    Global security dependency.

    Registered on the app so every route is authenticated and, where its rule declares a
    project reference, authorized before the handler runs. Handlers that need the results
    ask for ``require_principal`` / ``require_authorization``; FastAPI caches dependencies
    per request, so nothing is resolved twice.
    """


def require_principal(principal: Principal | None = Depends(authenticate)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return principal


def require_authorization(
    request: Request,
    authz: AuthorizationContext | None = Depends(resolve_authorization),
) -> AuthorizationContext:
    if authz is None:
        raise RuntimeError(f"No project rule configured for {request.method} {request.url.path}")
    return authz
