"""Seed script for development data.

Run against a running API:  python -m leaveflow.seed
Start the API with MAIL_BACKEND=memory to avoid needing Gmail credentials.
The admin is written straight to the database configured by DATABASE_URL;
every other account is registered through the API as that admin.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

from leaveflow.db import dispose_engine, get_session_factory
from leaveflow.exceptions import ConflictError
from leaveflow.services.auth import create_admin

BASE_URL = "http://localhost:8000"
PASSWORD = "password123"

ADMIN = {"email": "admin@example.com", "name": "Ada Admin", "role": "ADMIN"}
MANAGERS = [
    {"email": "maria.manager@example.com", "name": "Maria Lopez", "role": "MANAGER"},
    {"email": "sam.manager@example.com", "name": "Sam Patel", "role": "MANAGER"},
]
# Employee email -> manager email
EMPLOYEES = [
    ({"email": "alice@example.com", "name": "Alice Johnson", "role": "EMPLOYEE"}, "maria.manager@example.com"),
    ({"email": "bob@example.com", "name": "Bob Smith", "role": "EMPLOYEE"}, "maria.manager@example.com"),
    ({"email": "carol@example.com", "name": "Carol Williams", "role": "EMPLOYEE"}, "sam.manager@example.com"),
]


def _next_business_day(start: date, days_ahead: int) -> date:
    candidate = start + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:  # Skip weekends
        candidate += timedelta(days=1)
    return candidate


async def bootstrap_admin() -> None:
    """Create the first admin, who can then register everyone else."""
    async with get_session_factory()() as session:
        try:
            await create_admin(session, ADMIN["email"], ADMIN["name"], PASSWORD)
            print(f"  [OK] ADMIN {ADMIN['email']}")
        except ConflictError:
            print(f"  [SKIP] {ADMIN['email']} (already registered)")
    await dispose_engine()


async def _register(client: httpx.AsyncClient, admin_headers: dict[str, str], payload: dict) -> None:
    resp = await client.post(
        f"{BASE_URL}/auth/register",
        json={**payload, "password": PASSWORD},
        headers=admin_headers,
    )
    if resp.status_code == 201:
        print(f"  [OK] {payload['role']} {payload['email']}")
    elif resp.status_code == 409:
        print(f"  [SKIP] {payload['email']} (already registered)")
    else:
        print(f"  [ERROR] {payload['email']}: {resp.status_code} {resp.text[:200]}")


async def _login(client: httpx.AsyncClient, email: str) -> tuple[dict[str, str], dict]:
    resp = await client.post(f"{BASE_URL}/auth/login", json={"email": email, "password": PASSWORD})
    resp.raise_for_status()
    body = resp.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]


async def seed_users(client: httpx.AsyncClient) -> None:
    print("\n--- Seeding users ---")
    await bootstrap_admin()
    admin_headers, _ = await _login(client, ADMIN["email"])
    for manager in MANAGERS:
        await _register(client, admin_headers, manager)

    manager_ids = {}
    for manager in MANAGERS:
        _, user = await _login(client, manager["email"])
        manager_ids[manager["email"]] = user["id"]

    for employee, manager_email in EMPLOYEES:
        await _register(client, admin_headers, {**employee, "manager_id": manager_ids[manager_email]})


async def seed_leaves(client: httpx.AsyncClient) -> None:
    """Create a few requests and decide one. Skipped for employees who already have requests."""
    print("\n--- Seeding leave requests ---")
    today = date.today()
    plans = {
        "alice@example.com": ("EARNED", 10, 3, "Family trip planned months ago, handover notes ready."),
        "bob@example.com": ("SICK", 1, 2, "Flu, doctor's note attached, need a couple of days."),
        "carol@example.com": ("CASUAL", 5, 0, "Moving apartments and need a day to handle the move."),
    }

    created: dict[str, str] = {}
    for email, (leave_type, offset, length, reason) in plans.items():
        headers, _ = await _login(client, email)
        existing = await client.get(f"{BASE_URL}/leaves/mine", headers=headers)
        if existing.status_code == 200 and existing.json()["total"] > 0:
            print(f"  [SKIP] {email} (already has requests)")
            continue

        start = _next_business_day(today, offset)
        resp = await client.post(
            f"{BASE_URL}/leaves",
            json={
                "type": leave_type,
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=length)).isoformat(),
                "reason": reason,
            },
            headers=headers,
        )
        if resp.status_code == 201:
            created[email] = resp.json()["id"]
            print(f"  [OK] {leave_type} leave for {email}")
        else:
            print(f"  [ERROR] {email}: {resp.status_code} {resp.text[:200]}")

    bob_leave = created.get("bob@example.com")
    if bob_leave:
        headers, _ = await _login(client, "maria.manager@example.com")
        resp = await client.post(
            f"{BASE_URL}/leaves/{bob_leave}/approve",
            json={"comment": "Get well soon"},
            headers=headers,
        )
        if resp.status_code == 200:
            print("  [OK] Approved Bob's sick leave")
        else:
            print(f"  [ERROR] Approving Bob's leave: {resp.status_code}")


async def main() -> None:
    print("=" * 60)
    print("  LeaveFlow - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_users(client)
        await seed_leaves(client)

    print("\nDone. All accounts use the password:", PASSWORD)


if __name__ == "__main__":
    asyncio.run(main())
