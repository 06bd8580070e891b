# grm/services/rules_service.py
import logging
from typing import Any, Dict, List
from fastapi import HTTPException
from pydantic import ValidationError
from grm.models.notification import NotificationRule, RuleFields, RuleUpdate
from grm.repositories import rules_repo as repo

logger = logging.getLogger(__name__)

DEFAULT_RULE = {
    "name": "Default response time",
    "department": "All",
    "priority": "All",
    "trigger_time": 15,
    "escalation_time": 30,
    "notify_roles": ["Supervisor"],
    "methods": [{"type": "email", "enabled": True}, {"type": "push", "enabled": True}],
    "is_active": True,
}


async def get_or_404(rule_id: str) -> Dict[str, Any]:
    rule = await repo.find_by_id(rule_id)
    if not rule:
        raise HTTPException(404, "Notification rule not found")
    return rule


async def list_rules() -> List[Dict[str, Any]]:
    return await repo.list_all()


async def create(payload: RuleFields) -> Dict[str, Any]:
    doc = NotificationRule(**payload.model_dump()).model_dump()
    await repo.insert(doc)
    logger.info("notification rule '%s' created", doc["name"])
    return doc


def merge(rule: Dict[str, Any], payload: RuleUpdate) -> Dict[str, Any]:
    """Applies a partial update and re-validates the whole rule."""
    merged = {**rule, **payload.model_dump(exclude_none=True)}
    try:
        return NotificationRule(**merged).model_dump()
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))


async def update(rule_id: str, payload: RuleUpdate) -> Dict[str, Any]:
    doc = merge(await get_or_404(rule_id), payload)
    await repo.update_by_id(rule_id, {k: v for k, v in doc.items() if k != "id"})
    return doc


async def toggle(rule_id: str) -> Dict[str, Any]:
    rule = await get_or_404(rule_id)
    await repo.update_by_id(rule_id, {"is_active": not rule.get("is_active", True)})
    return await repo.find_by_id(rule_id)


async def delete(rule_id: str) -> None:
    if not await repo.delete_by_id(rule_id):
        raise HTTPException(404, "Notification rule not found")


async def ensure_default_rule() -> bool:
    """Seeds the 15/30 minute rule when no rule exists yet."""
    if await repo.count():
        return False
    await create(RuleFields(**DEFAULT_RULE))
    return True
