# grm/models/common.py
from typing import Literal

Department = Literal["Front Desk","Housekeeping","Engineering","F&B","Security","IT","Maintenance"]
Priority = Literal["Low","Medium","High"]
RequestStatus = Literal["Open","In Progress","Resolved"]
UserRole = Literal["Staff","Supervisor","Manager","Admin"]
MethodType = Literal["email","push","sms","slack","teams","webhook"]
NotificationType = Literal["trigger","escalation","resolved"]

DEPARTMENTS = ["Front Desk","Housekeeping","Engineering","F&B","Security","IT","Maintenance"]
PRIORITIES = ["Low","Medium","High"]
STATUSES = ["Open","In Progress","Resolved"]
ROLES = ["Staff","Supervisor","Manager","Admin"]
METHOD_TYPES = ["email","push","sms","slack","teams","webhook"]

# Filters and rules accept "All" as a wildcard
ALL = "All"

OPEN_STATES = ["Open","In Progress"]

ALLOWED_TRANSITIONS = {
  "Open": {"In Progress","Resolved"},
  "In Progress": {"Resolved"},
  "Resolved": set(),
}

PRIORITY_ORDER = {"High": 3, "Medium": 2, "Low": 1}

# Roles allowed to manage users and notification rules
SETTINGS_ROLES = ["Admin","Manager"]
