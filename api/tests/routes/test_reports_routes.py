"""HTTP tests for report downloads and JSON report endpoints."""

import csv
import io
from datetime import UTC, datetime, timedelta

import pytest

from models import UserRole

pytestmark = pytest.mark.integration

TODAY = datetime.now(UTC).date()
RANGE = {"start_date": (TODAY - timedelta(days=7)).isoformat(), "end_date": TODAY.isoformat()}


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


async def _log_workouts(member, machine_id: int, *calories: int) -> list[dict]:
    start = datetime.now(UTC) - timedelta(hours=3)
    created = []
    for value in calories:
        response = await member.post(
            "/api/workouts",
            json={
                "machine_id": machine_id,
                "start_time": start.isoformat(),
                "duration_minutes": 40,
                "calories_burned": value,
            },
        )
        created.append(response.json())
    return created


class TestUsageReport:
    async def test_csv_download(self, login_as, seed_machine):
        machine_id = await seed_machine()
        member = await login_as("amani")
        await _log_workouts(member, machine_id, 300, 5000)
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get("/api/reports/usage/csv", params=RANGE)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            f'attachment; filename="usage_report_{RANGE["start_date"]}'
            f'_to_{RANGE["end_date"]}.csv"'
        )
        rows = _rows(response.text)
        assert rows[0] == ["Machine Usage Report"]
        assert rows[4][:4] == ["Treadmill-001", "Treadmill", "2", "5300"]
        assert rows[4][-1] == "50.0"

    async def test_json(self, login_as, seed_machine):
        await seed_machine()
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.get("/api/reports/usage", params=RANGE)

        data = response.json()
        assert data["start_date"] == RANGE["start_date"]
        assert data["rows"][0]["total_sessions"] == 0

    async def test_members_are_forbidden(self, login_as):
        member = await login_as("amani")

        response = await member.get("/api/reports/usage/csv", params=RANGE)

        assert response.status_code == 403

    async def test_end_before_start(self, login_as):
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get(
            "/api/reports/usage/csv",
            params={"start_date": "2026-05-10", "end_date": "2026-05-01"},
        )

        assert response.status_code == 400

    async def test_missing_dates(self, login_as):
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get("/api/reports/usage/csv")

        assert response.status_code == 422


class TestMemberProgressReport:
    async def test_member_downloads_own(self, login_as, seed_machine):
        machine_id = await seed_machine()
        member = await login_as("amani")
        created = await _log_workouts(member, machine_id, 300)
        user_id = created[0]["user_id"]

        response = await member.get(
            "/api/reports/member-progress/csv", params={"user_id": user_id, **RANGE}
        )

        assert response.status_code == 200
        assert f"member_progress_{user_id}_" in response.headers["content-disposition"]
        rows = _rows(response.text)
        assert rows[1] == ["Member: Amani Tester"]
        assert ["Total Workouts: 1"] in rows

    async def test_member_cannot_download_others(self, login_as, seed_machine):
        machine_id = await seed_machine()
        owner = await login_as("amani")
        created = await _log_workouts(owner, machine_id, 300)
        other = await login_as("baraka")

        response = await other.get(
            "/api/reports/member-progress/csv",
            params={"user_id": created[0]["user_id"], **RANGE},
        )

        assert response.status_code == 403

    async def test_staff_json_and_unknown_member(self, login_as, seed_machine):
        machine_id = await seed_machine()
        member = await login_as("amani")
        created = await _log_workouts(member, machine_id, 300, 250)
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get(
            "/api/reports/member-progress",
            params={"user_id": created[0]["user_id"], **RANGE},
        )
        missing = await coach.get(
            "/api/reports/member-progress", params={"user_id": 9999, **RANGE}
        )

        assert response.json()["summary"]["total_calories"] == 550
        assert response.json()["summary"]["avg_duration_minutes"] == 40.0
        assert missing.status_code == 404


class TestDataQualityAndSystem:
    async def test_data_quality_csv(self, login_as, seed_machine):
        machine_id = await seed_machine()
        member = await login_as("amani")
        await _log_workouts(member, machine_id, 300, 0)
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.get("/api/reports/data-quality/csv")

        assert response.headers["content-disposition"] == (
            'attachment; filename="data_quality_report.csv"'
        )
        rows = _rows(response.text)
        assert rows[2] == ["Total Sessions: 2"]
        assert rows[3] == ["Sessions with Quality Issues: 1"]
        assert rows[4] == ["Data Quality Score: 50.0%"]
        assert rows[7][0] == "Amani Tester"
        assert rows[7][3] == "Calories burned cannot be less than 1"

    async def test_data_quality_json(self, login_as):
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        data = (await coach.get("/api/reports/data-quality")).json()

        assert data["total_sessions"] == 0
        assert data["quality_score"] == 100.0

    async def test_system_overview(self, login_as, seed_machine):
        await seed_machine()
        await seed_machine("Bike-001", "Exercise Bike")
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        data = (await coach.get("/api/reports/system/overview")).json()

        assert data["total_machines"] == 2
        assert data["total_users"] == 1
        assert data["machine_statistics"]["Bike-001"] == {
            "sessions": 0,
            "status": "ACTIVE",
            "last_maintenance": "Never",
        }


@pytest.mark.parametrize(
    "path",
    ["/api/reports/data-quality/csv", "/api/reports/system/overview"],
)
async def test_staff_reports_require_login(client, path):
    assert (await client.get(path)).status_code == 401
