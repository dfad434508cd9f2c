"""Tests for the analytics page: counts per area and per class over a date range."""
import pytest

from cleancheck.domain.services.analytics_service import AnalyticsService, FREE_TEXT_KEY

ANALYTICS = "/api/admin/analytics"


@pytest.fixture
def seeded(make_class, make_area, make_default, make_report):
    seven = make_class("701")
    eight = make_class("801")
    hall = make_area("走廊", seven)
    room = make_area("教室", seven)
    stairs = make_area("樓梯", eight)
    trash = make_default("垃圾未清", shorthand="垃")
    window = make_default("窗戶未擦", shorthand="窗")

    make_report(hall, "2024-06-03", "垃圾未清")
    make_report(hall, "2024-06-04", "垃圾未清", repeated=2)
    make_report(room, "2024-06-04", "窗戶未擦")
    make_report(stairs, "2024-06-05", "有人在樓梯吃東西")
    make_report(stairs, "2024-06-20", "垃圾未清")  # outside the range
    return trash, window


class TestAnalyticsService:

    def test_by_area(self, test_db, seeded):
        trash, window = seeded
        buckets = AnalyticsService(test_db).reports_by_area("2024-06-01", "2024-06-10")
        result = {b.key: b.counts for b in buckets}

        assert result == {
            "走廊": {trash.id: 2},
            "教室": {window.id: 1},
            "樓梯": {FREE_TEXT_KEY: 1},
        }

    def test_by_class(self, test_db, seeded):
        trash, window = seeded
        buckets = AnalyticsService(test_db).reports_by_class("2024-06-01", "2024-06-10")
        result = {b.key: b.counts for b in buckets}

        assert result == {
            "701": {trash.id: 2, window.id: 1},
            "801": {FREE_TEXT_KEY: 1},
        }

    def test_range_is_inclusive(self, test_db, seeded):
        buckets = AnalyticsService(test_db).reports_by_area("2024-06-04", "2024-06-04")
        assert sorted(b.key for b in buckets) == sorted(["走廊", "教室"])

    def test_empty_range(self, test_db, seeded):
        assert AnalyticsService(test_db).reports_by_class("2023-01-01", "2023-01-31") == []


class TestAnalyticsAPI:

    def test_defaults_legend(self, client, seeded):
        response = client.get(f"{ANALYTICS}/defaults")
        assert response.status_code == 200
        assert [d["shorthand"] for d in response.json()] == ["垃", "窗"]

    def test_by_class_endpoint(self, client, seeded):
        trash, _ = seeded
        response = client.get(
            f"{ANALYTICS}/by-class",
            params={"start_date": "2024-06-01", "end_date": "2024-06-30"},
        )
        assert response.status_code == 200
        data = {b["key"]: b["counts"] for b in response.json()}
        # JSON object keys are strings
        assert data["801"] == {"0": 1, str(trash.id): 1}

    def test_bad_range_dates(self, client):
        response = client.get(
            f"{ANALYTICS}/by-area",
            params={"start_date": "2024-06-01", "end_date": "June"},
        )
        assert response.status_code == 400
