# stockpile/core/constants.py
from enum import IntEnum


class Role(IntEnum):
    ADMIN = 1
    MEMBER = 2


ROLE_NAMES = {
    Role.ADMIN: "Administrator",
    Role.MEMBER: "Member",
}


class SubscriptionStatus(IntEnum):
    TRIAL = 1
    TRIAL_EXPIRED = 2
    VALID = 3
    EXPIRED = 4
    CANCELED = 5


ACTIVE_SUBSCRIPTION_STATUSES = (SubscriptionStatus.TRIAL, SubscriptionStatus.VALID)


class FieldType(IntEnum):
    TEXT = 1
    NUMBER = 2
    CURRENCY = 3


# Payment provider status -> (subscription status, valid)
BILLING_STATUS_MAP = {
    "trialing": (SubscriptionStatus.TRIAL, True),
    "active": (SubscriptionStatus.VALID, True),
    "past_due": (SubscriptionStatus.EXPIRED, False),
    "unpaid": (SubscriptionStatus.EXPIRED, False),
    "canceled": (SubscriptionStatus.CANCELED, False),
}
