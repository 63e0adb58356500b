"""Seed script for development data.

Run with:  leavedesk-seed   (LEAVEDESK_URL overrides the API address)

Talks to a running API, so every write goes through the same lifecycle rules
as real traffic. Safe to run repeatedly: leave types are ensured, requests use
idempotency keys and decisions on already-decided requests are skipped.
"""

from __future__ import annotations

import asyncio
import os
import sys
from datetime import date, timedelta

import httpx

BASE_URL = os.environ.get("LEAVEDESK_URL", "http://localhost:8000")

ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"
MANAGER_ID = "00000000-0000-0000-0000-000000000002"
ALICE_ID = "00000000-0000-0000-0000-000000000003"
BOB_ID = "00000000-0000-0000-0000-000000000004"


def _headers(user_id: str, role: str) -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": user_id, "X-Role": role}


ADMIN_HEADERS = _headers(ADMIN_USER_ID, "admin")
MANAGER_HEADERS = _headers(MANAGER_ID, "manager")

EXTRA_LEAVE_TYPES = [
    {
        "name": "Personal Leave",
        "category": "personal",
        "requires_approval": True,
        "deducts_balance": False,
        "description": "Unpaid personal time off",
    },
]


async def _safe_post(
    client: httpx.AsyncClient,
    url: str,
    json: dict | None,
    headers: dict[str, str],
    label: str,
) -> dict | None:
    """POST tolerating conflicts and already-decided requests."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409 or (resp.status_code == 400 and resp.json().get("kind") == "state"):
        print(f"  [SKIP] {label} ({resp.json().get('detail')})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


def _next_weekday(start: date, days_ahead: int) -> date:
    candidate = start + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


async def seed_leave_types(client: httpx.AsyncClient) -> dict[str, str]:
    """Ensure the default and extra leave types; return name -> id."""
    print("\n--- Seeding leave types ---")
    defaults = await _safe_post(client, f"{BASE_URL}/leave-types/defaults", None, ADMIN_HEADERS, "Default types")

    for body in EXTRA_LEAVE_TYPES:
        await _safe_post(client, f"{BASE_URL}/leave-types", body, ADMIN_HEADERS, f"Leave type: {body['name']}")

    resp = await client.get(f"{BASE_URL}/leave-types", headers=ADMIN_HEADERS)
    resp.raise_for_status()
    ids = {item["name"]: item["id"] for item in resp.json()["items"]}
    if defaults is None:
        print("  [WARN] default leave types were not confirmed")
    return ids


async def seed_requests(client: httpx.AsyncClient, type_ids: dict[str, str]) -> None:
    print("\n--- Seeding leave requests ---")
    today = date.today()

    # Alice: 3-day annual leave next week, approved by her manager.
    alice_start = _next_weekday(today, 7)
    alice_end = _next_weekday(alice_start, 2)
    alice = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_type_id": type_ids["Annual Leave"],
            "start_date": alice_start.isoformat(),
            "end_date": alice_end.isoformat(),
            "reason": "Family vacation",
            "idempotency_key": "seed-alice-annual",
        },
        _headers(ALICE_ID, "employee"),
        "Request: Alice 3-day annual leave",
    )
    if alice is not None:
        await _safe_post(
            client,
            f"{BASE_URL}/leave-requests/{alice['id']}/approve",
            {"comments": "Enjoy!"},
            MANAGER_HEADERS,
            "Decision: approve Alice's annual leave",
        )

    # Bob: 1-day sick leave last week, approved automatically.
    bob_day = today - timedelta(days=7)
    while bob_day.weekday() >= 5:
        bob_day -= timedelta(days=1)
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_type_id": type_ids["Sick Leave"],
            "start_date": bob_day.isoformat(),
            "end_date": bob_day.isoformat(),
            "reason": "Flu",
            "idempotency_key": "seed-bob-sick",
        },
        _headers(BOB_ID, "employee"),
        "Request: Bob 1-day sick leave (auto-approved)",
    )

    # Bob: personal leave in two weeks, left pending.
    bob_start = _next_weekday(today, 14)
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "leave_type_id": type_ids["Personal Leave"],
            "start_date": bob_start.isoformat(),
            "end_date": bob_start.isoformat(),
            "reason": "Moving house",
            "idempotency_key": "seed-bob-personal",
        },
        _headers(BOB_ID, "employee"),
        "Request: Bob personal leave (pending)",
    )


async def seed() -> None:
    print("=" * 60)
    print("  LeaveDesk - Development Seed Script")
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
            print("Make sure the API is running (uvicorn leavedesk.main:app)")
            sys.exit(1)

        type_ids = await seed_leave_types(client)
        await seed_requests(client, type_ids)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


def main() -> None:
    asyncio.run(seed())


if __name__ == "__main__":
    main()
