"""Custom review rules: CRUD, bulk enable/disable and built-in templates."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from prpilot_core.models import SEVERITIES
from prpilot_server.deps import get_store
from prpilot_server.schemas import RuleCreate, RulesToggle, RuleUpdate
from prpilot_server.serializers import rule_to_dict
from prpilot_store.base import BaseStore
from prpilot_store.models import RuleRecord

logger = logging.getLogger(__name__)

router = APIRouter()

RULE_TEMPLATES: dict[str, dict] = {
    "no-console": {
        "name": "No Console Logs",
        "description": "Flag console.log, console.warn, console.error statements that should be removed before production",
        "category": "code-quality",
        "severity": "medium",
    },
    "require-error-handling": {
        "name": "Require Error Handling",
        "description": "Ensure async functions have try-catch blocks or proper error handling",
        "category": "reliability",
        "severity": "high",
    },
    "no-hardcoded-secrets": {
        "name": "No Hardcoded Secrets",
        "description": "Flag any hardcoded API keys, passwords, tokens, or secrets",
        "category": "security",
        "severity": "critical",
    },
    "require-input-validation": {
        "name": "Require Input Validation",
        "description": "Ensure all user inputs are validated and sanitized",
        "category": "security",
        "severity": "high",
    },
    "max-function-length": {
        "name": "Maximum Function Length",
        "description": "Flag functions that exceed 50 lines - should be broken down",
        "category": "maintainability",
        "severity": "medium",
    },
    "require-tests": {
        "name": "Require Test Coverage",
        "description": "New functions and significant changes should include tests",
        "category": "testing",
        "severity": "medium",
    },
    "no-deprecated-apis": {
        "name": "No Deprecated APIs",
        "description": "Flag usage of deprecated APIs or methods",
        "category": "maintenance",
        "severity": "medium",
    },
    "accessibility-check": {
        "name": "Accessibility Requirements",
        "description": "Ensure UI components have proper ARIA labels and accessibility attributes",
        "category": "accessibility",
        "severity": "medium",
    },
}

_INVALID_SEVERITY = f"severity must be one of: {', '.join(SEVERITIES)}"


def list_templates() -> list[dict]:
    return [{"id": key, **template, "isTemplate": True} for key, template in RULE_TEMPLATES.items()]


@router.get("/rules")
def list_rules(
    user_id: str = Query(..., alias="userId", min_length=1),
    repo_id: Optional[str] = Query(None, alias="repoId"),
    include_templates: bool = Query(False, alias="includeTemplates"),
    store: BaseStore = Depends(get_store),
):
    rules = store.list_rules(user_id, repo_id=repo_id)
    response = {"success": True, "rules": [rule_to_dict(r) for r in rules], "count": len(rules)}
    if include_templates:
        response["templates"] = list_templates()
    return response


@router.post("/rules", status_code=201)
def create_rule(body: RuleCreate, store: BaseStore = Depends(get_store)):
    template = RULE_TEMPLATES.get(body.template_id or "", {})
    name = body.name or template.get("name")
    description = body.description or template.get("description")
    category = body.category or template.get("category") or "general"
    severity = body.severity or template.get("severity") or "medium"
    repo_id = body.repo_id or None

    if not name or not description:
        raise HTTPException(status_code=400, detail="name and description are required")
    if severity not in SEVERITIES:
        raise HTTPException(status_code=400, detail=_INVALID_SEVERITY)
    if store.find_rule_by_name(body.user_id, name, repo_id=repo_id) is not None:
        raise HTTPException(status_code=409, detail="A rule with this name already exists")
    if repo_id and store.get_repository(repo_id, user_id=body.user_id) is None:
        raise HTTPException(status_code=404, detail="Repository not found or access denied")

    rule = store.add_rule(
        RuleRecord(
            user_id=body.user_id,
            repo_id=repo_id,
            name=name,
            description=description,
            category=category,
            severity=severity,
            pattern=body.pattern or None,
            template_id=body.template_id or None,
            enabled=body.enabled,
        )
    )
    return {"success": True, "rule": rule_to_dict(rule), "message": "Rule created successfully"}


@router.put("/rules")
def update_rule(body: RuleUpdate, store: BaseStore = Depends(get_store)):
    if store.get_rule(body.rule_id, user_id=body.user_id) is None:
        raise HTTPException(status_code=404, detail="Rule not found or access denied")
    if body.severity is not None and body.severity not in SEVERITIES:
        raise HTTPException(status_code=400, detail=_INVALID_SEVERITY)

    updates = body.model_dump(exclude_none=True, exclude={"rule_id", "user_id"})
    rule = store.update_rule(body.rule_id, updates)
    return {"success": True, "rule": rule_to_dict(rule), "message": "Rule updated successfully"}


@router.delete("/rules")
def delete_rule(
    rule_id: str = Query(..., alias="ruleId", min_length=1),
    user_id: str = Query(..., alias="userId", min_length=1),
    store: BaseStore = Depends(get_store),
):
    if store.get_rule(rule_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Rule not found or access denied")
    store.delete_rule(rule_id)
    return {"success": True, "message": "Rule deleted successfully"}


@router.patch("/rules")
def toggle_rules(body: RulesToggle, store: BaseStore = Depends(get_store)):
    owned = store.owned_rule_ids(body.user_id, body.rule_ids)
    unauthorized = [rule_id for rule_id in body.rule_ids if rule_id not in owned]
    if unauthorized:
        raise HTTPException(
            status_code=403,
            detail={"error": "Some rules not found or access denied", "unauthorizedIds": unauthorized},
        )

    updated = store.set_rules_enabled(body.rule_ids, body.enabled)
    state = "enabled" if body.enabled else "disabled"
    logger.info("%d rule(s) %s for user %s", updated, state, body.user_id)
    return {"success": True, "message": f"{updated} rule(s) {state} successfully", "updatedCount": updated}
