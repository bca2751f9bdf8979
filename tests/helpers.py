"""Raw input builders shared by the tests."""

from datetime import datetime, timezone


ORG_ID = "org-1"
VALID_PHONE = "+14045551234"


def member_input(**overrides):
    data = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "orgId": ORG_ID,
    }
    data.update(overrides)
    return data


def fee_input(**overrides):
    data = {
        "name": "Spring dues",
        "amount": "25.00",
        "dueDate": datetime(2024, 4, 1, tzinfo=timezone.utc),
        "memberIds": ["m1", "m2", "m3"],
        "orgId": ORG_ID,
    }
    data.update(overrides)
    return data


def transaction_input(**overrides):
    data = {
        "type": "Expense",
        "amount": "12.50",
        "category": "Supplies",
        "description": "Markers",
        "date": datetime(2024, 3, 15, tzinfo=timezone.utc),
        "createdBy": "user-1",
        "orgId": ORG_ID,
    }
    data.update(overrides)
    return data
