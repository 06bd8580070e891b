# grm/models/notification.py
from pydantic import BaseModel, Field, model_validator
from datetime import datetime, timezone
from typing import Optional, List, Literal, Union
import uuid
from grm.models.common import Department, Priority, UserRole, MethodType, NotificationType

class NotificationMethod(BaseModel):
    type: MethodType
    enabled: bool = True

def _default_methods() -> List[NotificationMethod]:
    return [NotificationMethod(type="email"), NotificationMethod(type="push")]

class RuleFields(BaseModel):
    name: str = Field(min_length=1)
    department: Union[Department, Literal["All"]] = "All"
    priority: Union[Priority, Literal["All"]] = "Medium"
    trigger_time: int = Field(default=15, ge=0)
    escalation_time: int = Field(default=30, ge=0)
    notify_roles: List[UserRole] = Field(default_factory=lambda: ["Supervisor"])
    methods: List[NotificationMethod] = Field(default_factory=_default_methods)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_times_and_methods(self):
        if self.escalation_time < self.trigger_time:
            raise ValueError("escalation_time must be >= trigger_time")
        # one entry per method type, last one wins
        by_type = {m.type: m for m in self.methods}
        self.methods = list(by_type.values())
        return self

class NotificationRule(RuleFields):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)

class RuleUpdate(BaseModel):
    name: Optional[str] = None
    department: Optional[Union[Department, Literal["All"]]] = None
    priority: Optional[Union[Priority, Literal["All"]]] = None
    trigger_time: Optional[int] = Field(default=None, ge=0)
    escalation_time: Optional[int] = Field(default=None, ge=0)
    notify_roles: Optional[List[UserRole]] = None
    methods: Optional[List[NotificationMethod]] = None
    is_active: Optional[bool] = None

class Notification(BaseModel):
    id: str
    type: NotificationType
    request_id: str
    rule_id: Optional[str] = None
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_read: bool = False
    priority: Literal["low","medium","high"] = "medium"

class NotificationList(BaseModel):
    items: List[Notification]
    unread: int

class PushTokenRegistration(BaseModel):
    user_id: str
    token: str = Field(min_length=1)
