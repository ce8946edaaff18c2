"""Pytest configuration and fixtures."""

import pytest

from fakes import FIXED_NOW, FakeInference
from practice_flows.config import get_settings
from practice_flows.store import InMemoryStore

# Always set, so keys exported on the host never leak into a test run.
TEST_ENV = {
    "LLM_PROVIDER": "claude",
    "ANTHROPIC_API_KEY": "sk-ant-test",
    "OPENAI_API_KEY": "sk-test",
    "GOOGLE_API_KEY": "test-key",
    "STORE_BACKEND": "memory",
}


def seed_documents() -> dict[str, list[dict]]:
    """A small practice: one partner, one manager, three articles, two clients with work."""
    return {
        "employees": [
            {
                "id": "S001",
                "name": "Anita Rao",
                "email": "anita@raoassociates.in",
                "designation": "Partner",
                "role": ["Partner"],
            },
            {
                "id": "M001",
                "name": "Vikram Shah",
                "email": "vikram@raoassociates.in",
                "designation": "Manager",
                "role": ["Audit"],
                "managerId": "S001",
            },
            {
                "id": "E001",
                "name": "Priya Nair",
                "email": "priya@raoassociates.in",
                "designation": "Employee",
                "role": ["Articles"],
                "managerId": "M001",
            },
            {
                "id": "E002",
                "name": "Rahul Mehta",
                "email": "rahul@raoassociates.in",
                "designation": "Employee",
                "role": ["Articles"],
                "managerId": "M001",
            },
            {
                "id": "E003",
                "name": "Suresh Iyer",
                "email": "suresh@raoassociates.in",
                "designation": "Employee",
                "role": ["Articles"],
                "isActive": False,
            },
        ],
        "departments": [
            {"id": "D1", "name": "Articles", "order": 1, "standardWeeklyHours": 40},
            {"id": "D2", "name": "Audit", "order": 2, "standardWeeklyHours": 45},
        ],
        "firms": [
            {
                "id": "F1",
                "name": "Rao & Associates",
                "billingAddressLine1": "12 MG Road",
                "billingAddressLine2": "Fort",
                "billingAddressLine3": "Mumbai 400001",
                "gstn": "27AAAFR1234A1Z5",
                "pan": "AAAFR1234A",
                "email": "billing@raoassociates.in",
            }
        ],
        "clients": [
            {
                "id": "C001",
                "name": "Acme Traders",
                "category": "Corporate",
                "mailId": "accounts@acme.in",
                "partnerId": "S001",
                "firmId": "F1",
                "contactPerson": "Meera Joshi",
                "contactPersonDesignation": "CFO",
                "gstin": "27AABCA1111B1Z2",
                "state": "Maharashtra",
                "country": "India",
                "uiOnlyField": "ignored on read",
            },
            {
                "id": "C002",
                "name": "Bharat Foods",
                "category": "Corporate",
                "mailId": "unassigned",
                "partnerId": "S001",
                "firmId": "F1",
            },
            {
                "id": "C003",
                "name": "Coastal Exports",
                "category": "Partnership",
                "mailId": "ops@coastal.in",
                "partnerId": "S001",
            },
        ],
        "engagementTypes": [
            {
                "id": "T1",
                "name": "GST Filing",
                "standardHours": 6,
                "recurrence": "Monthly",
                "subTaskTitles": ["Collect invoices", "Reconcile ledgers", "File return"],
            },
            {"id": "T2", "name": "Statutory Audit", "standardHours": 80},
        ],
        "engagements": [
            {
                "id": "abcde12345",
                "clientId": "C001",
                "type": "T2",
                "remarks": "Statutory Audit FY24",
                "status": "In Process",
                "dueDate": "2025-06-30",
                "assignedTo": ["E001", "M001"],
                "reportedTo": "S001",
                "fees": 150000,
                "budgetedHours": 40,
                "financialYear": "2024-25",
            },
            {
                "id": "ENG2",
                "clientId": "C001",
                "type": "T1",
                "remarks": "GST June",
                "status": "Pending",
                "dueDate": "2025-06-20",
                "assignedTo": ["E001"],
                "reportedTo": "M001",
                "financialYear": "2025-26",
            },
            {
                "id": "ENG3",
                "clientId": "C002",
                "type": "T1",
                "remarks": "GST June",
                "status": "Cancelled",
                "dueDate": "2025-06-25",
                "assignedTo": ["E002"],
                "budgetedHours": 50,
                "financialYear": "2025-26",
            },
            {
                "id": "ENG4",
                "clientId": "C002",
                "type": "T1",
                "remarks": "GST May",
                "status": "Completed",
                "dueDate": "2025-06-10",
                "assignedTo": ["E002"],
                "budgetedHours": 8,
                "financialYear": "2025-26",
            },
            {
                "id": "ENG5",
                "clientId": "C001",
                "type": "T1",
                "remarks": "GST April",
                "status": "Completed",
                "dueDate": "2025-05-31",
                "assignedTo": ["E001"],
            },
        ],
        "recurringEngagements": [
            {"id": "R1", "clientId": "C001", "engagementTypeId": "T1", "fees": 5000},
        ],
        "events": [
            {
                "id": "EV1",
                "title": "Acme audit kickoff",
                "start": "2025-06-18T10:00:00Z",
                "end": "2025-06-18T11:00:00Z",
                "attendees": ["E001", "M001"],
                "engagementId": "abcde12345",
            },
            {
                "id": "EV2",
                "title": "Dentist",
                "start": "2025-06-19T09:00:00Z",
                "end": "2025-06-19T10:00:00Z",
                "attendees": ["E001"],
            },
            {
                "id": "EV3",
                "title": "Quarterly planning",
                "start": "2025-07-02T10:00:00Z",
                "end": "2025-07-02T12:00:00Z",
                "attendees": ["E001", "S001"],
            },
        ],
        "leaveRequests": [
            {
                "id": "L1",
                "employeeId": "E001",
                "employeeName": "Priya Nair",
                "startDate": "2025-06-18",
                "endDate": "2025-06-19",
                "reason": "Family function",
                "status": "Approved",
                "approvedBy": "S001",
            }
        ],
        "timesheets": [
            {
                "id": "TS0",
                "userId": "E001",
                "weekStartDate": "2025-05-26",
                "totalHours": 40,
                "entries": [{"engagementId": "ENG5", "hours": 40}],
            },
            {
                "id": "TS1",
                "userId": "E001",
                "weekStartDate": "2025-06-02",
                "totalHours": 35,
                "entries": [{"engagementId": "abcde12345", "hours": 35}],
            },
            {
                "id": "TS2",
                "userId": "E001",
                "weekStartDate": "2025-06-09",
                "totalHours": 30,
                "entries": [
                    {"engagementId": "abcde12345", "hours": 15},
                    {"engagementId": "ENG2", "hours": 15},
                ],
            },
        ],
    }


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Pin the environment and start and end every test with fresh settings."""
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    return InMemoryStore(seed_documents())


@pytest.fixture
def empty_store():
    return InMemoryStore()


@pytest.fixture
def fake_inference():
    return FakeInference()
