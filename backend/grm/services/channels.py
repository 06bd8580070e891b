# grm/services/channels.py
"""
Delivery of notifications through the channels a rule enables.

    email    SMTP when SMTP_HOST is set, otherwise logged (dev mode)
    push     in-app centre (added by the caller) + one log line per registered device token
    sms      logged; no SMS provider is configured
    slack    POST to SLACK_WEBHOOK_URL
    teams    POST to TEAMS_WEBHOOK_URL
    webhook  POST to NOTIFICATION_WEBHOOK_URL with optional X-Webhook-Secret

Webhook channels without a URL are logged instead of sent. A failing
channel is logged and does not stop the others.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

import httpx
from fastapi.encoders import jsonable_encoder

from grm.core.config import settings
from grm.models.notification import Notification
from grm.repositories import push_tokens_repo, users_repo

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10


def _subject(request: Dict[str, Any]) -> str:
    return f"Hotel Operations Alert - Room {request.get('room_number')}"


async def _recipients(rule: Optional[Dict[str, Any]]) -> List[dict]:
    roles = (rule or {}).get("notify_roles") or ["Supervisor"]
    return await users_repo.list_active_by_roles(roles)


# ── email ──────────────────────────────────────────────────────────────────

def _send_smtp(to_emails: List[str], subject: str, body: str) -> None:
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = ", ".join(to_emails)
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=HTTP_TIMEOUT) as server:
        if settings.smtp_use_tls:
            server.starttls()
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password or "")
        server.sendmail(settings.mail_from, to_emails, msg.as_string())


async def send_email(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    to = [u["email"] for u in await _recipients(rule) if u.get("email")]
    if not to:
        logger.info("Email skipped: no active recipients for %s", notification.id)
        return
    subject = f"[GRM] {rule['name']}" if rule and rule.get("name") else _subject(request)
    if not settings.smtp_host:
        logger.info("Email (dev mode): to=%s subject='%s' body='%s'", to, subject, notification.message)
        return
    await asyncio.to_thread(_send_smtp, to, subject, notification.message)
    logger.info("Email sent: to=%s subject='%s'", to, subject)


# ── push / sms ─────────────────────────────────────────────────────────────

async def send_push(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    users = await _recipients(rule)
    tokens = await push_tokens_repo.list_for_users([u["id"] for u in users])
    for t in tokens:
        logger.info("Push to %s (%s): %s", t.get("name"), t.get("department"), notification.message)
    if not tokens:
        logger.info("Push: in-app only for %s", notification.id)


async def send_sms(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    logger.info("SMS (no provider): HOTEL ALERT: %s [%s]", notification.message, notification.priority)


# ── webhooks ───────────────────────────────────────────────────────────────

def slack_payload(notification: Notification, request: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "text": notification.message,
        "attachments": [{
            "color": "danger" if notification.priority == "high" else "warning",
            "fields": [
                {"title": "Room", "value": request.get("room_number"), "short": True},
                {"title": "Department", "value": request.get("department"), "short": True},
                {"title": "Priority", "value": request.get("priority"), "short": True},
                {"title": "Logged By", "value": request.get("logged_by"), "short": True},
            ],
        }],
    }


def teams_payload(notification: Notification, request: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "@type": "MessageCard",
        "title": "Hotel Operations Alert",
        "text": notification.message,
        "themeColor": "FF0000" if notification.priority == "high" else "FFA500",
    }


def webhook_payload(notification: Notification, request: Dict[str, Any]) -> Dict[str, Any]:
    return jsonable_encoder({
        "event": "request_notification",
        "notification": notification,
        "request": request,
        "timestamp": datetime.now(timezone.utc),
    })


async def _post(name: str, url: Optional[str], payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> None:
    if not url:
        logger.info("%s (not configured): %s", name, payload.get("text") or payload.get("event"))
        return
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        resp = await client.post(url, json=payload, headers=headers)
        resp.raise_for_status()
    logger.info("%s sent (%s)", name, resp.status_code)


async def send_slack(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    await _post("Slack", settings.slack_webhook_url, slack_payload(notification, request))


async def send_teams(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    await _post("Teams", settings.teams_webhook_url, teams_payload(notification, request))


async def send_webhook(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]]) -> None:
    headers = {"X-Webhook-Secret": settings.notification_webhook_secret} if settings.notification_webhook_secret else None
    await _post("Webhook", settings.notification_webhook_url, webhook_payload(notification, request), headers)


SENDERS = {
    "email": send_email,
    "push": send_push,
    "sms": send_sms,
    "slack": send_slack,
    "teams": send_teams,
    "webhook": send_webhook,
}


def enabled_methods(rule: Optional[Dict[str, Any]]) -> List[str]:
    if rule is None:
        return ["push"]
    return [m["type"] for m in rule.get("methods", []) if m.get("enabled") and m.get("type") in SENDERS]


async def dispatch(notification: Notification, request: Dict[str, Any], rule: Optional[Dict[str, Any]] = None) -> List[str]:
    """Sends through every enabled method; returns the ones that went through."""
    delivered = []
    for method in enabled_methods(rule):
        try:
            await SENDERS[method](notification, request, rule)
            delivered.append(method)
        except Exception as e:
            logger.exception("Failed to send %s notification %s: %s", method, notification.id, e)
    return delivered
