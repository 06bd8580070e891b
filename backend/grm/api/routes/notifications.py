# grm/api/routes/notifications.py
from fastapi import APIRouter, Depends, HTTPException
from grm.api.deps import get_current_user, require_role
from grm.models.common import SETTINGS_ROLES
from grm.models.notification import NotificationList, NotificationRule, PushTokenRegistration, RuleFields, RuleUpdate
from grm.services import notification_service, push_service, rules_service

router = APIRouter()

# ---- Rules (Admin / Manager) ----

@router.get("/notification-rules", response_model=list[NotificationRule])
async def list_rules(current=Depends(require_role(SETTINGS_ROLES))):
    return await rules_service.list_rules()

@router.post("/notification-rules", response_model=NotificationRule, status_code=201)
async def create_rule(payload: RuleFields, current=Depends(require_role(SETTINGS_ROLES))):
    return await rules_service.create(payload)

@router.patch("/notification-rules/{rule_id}", response_model=NotificationRule)
async def update_rule(rule_id: str, payload: RuleUpdate, current=Depends(require_role(SETTINGS_ROLES))):
    return await rules_service.update(rule_id, payload)

@router.post("/notification-rules/{rule_id}/toggle", response_model=NotificationRule)
async def toggle_rule(rule_id: str, current=Depends(require_role(SETTINGS_ROLES))):
    return await rules_service.toggle(rule_id)

@router.delete("/notification-rules/{rule_id}", status_code=204)
async def delete_rule(rule_id: str, current=Depends(require_role(SETTINGS_ROLES))):
    await rules_service.delete(rule_id)

# ---- In-app notifications ----

@router.get("/notifications", response_model=NotificationList)
async def list_notifications(unread_only: bool = False, _user=Depends(get_current_user)):
    center = notification_service.center
    return {"items": center.list(unread_only=unread_only), "unread": center.unread_count}

@router.post("/notifications/check")
async def run_check(current=Depends(require_role(SETTINGS_ROLES))):
    """Runs the trigger check now instead of waiting for the next tick."""
    fired = await notification_service.run_check()
    return {"fired": len(fired)}

@router.post("/notifications/read-all")
async def mark_all_read(_user=Depends(get_current_user)):
    return {"updated": notification_service.center.mark_all_read()}

@router.post("/notifications/{notification_id}/read")
async def mark_read(notification_id: str, _user=Depends(get_current_user)):
    if not notification_service.center.mark_read(notification_id):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}

@router.delete("/notifications/{notification_id}")
async def dismiss(notification_id: str, _user=Depends(get_current_user)):
    if not notification_service.center.dismiss(notification_id):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}

@router.delete("/notifications")
async def clear(_user=Depends(get_current_user)):
    notification_service.center.clear()
    return {"ok": True}

# ---- Push tokens (unauthenticated) ----

@router.post("/push-tokens", status_code=201)
async def register_push_token(payload: PushTokenRegistration):
    doc = await push_service.register(payload.user_id, payload.token)
    return {"ok": True, "user_id": doc["user_id"]}
