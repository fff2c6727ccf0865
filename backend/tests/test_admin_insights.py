from datetime import date, datetime, timedelta, timezone

import pytest

from examprep import errors
from examprep.admin_insights import AdminInsights, metric_value, range_to_days
from examprep.enums import ExamCategory

NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def insights():
    return AdminInsights(ExamCategory.NEET_PG, clock=lambda: NOW)


def test_range_aliases():
    assert range_to_days("today") == 1
    for label in ("7d", "7day", "7days", " 7D "):
        assert range_to_days(label) == 7
    for label in ("30d", "30day", "30days"):
        assert range_to_days(label) == 30
    with pytest.raises(errors.InvalidRangeError):
        range_to_days("90d")


def test_metric_value_formula():
    day = date(1970, 1, 1) + timedelta(days=450)
    assert metric_value("active_users", day) == 750 + 50 + 100
    assert metric_value("questions_answered", day) == 1800 + 50 + 100


def test_time_series_defaults_to_seven_days(insights):
    series = insights.time_series("active_users")
    assert series["range"] == "7d"
    assert series["exam"] == ExamCategory.NEET_PG
    dates = [p["date"] for p in series["points"]]
    assert len(dates) == 7
    assert dates == sorted(dates)
    assert dates[-1] == "2024-03-10"
    assert dates[0] == "2024-03-04"


def test_time_series_is_deterministic(insights):
    first = insights.time_series("questions_answered", ExamCategory.JEE, "30days")
    second = insights.time_series("questions_answered", ExamCategory.JEE, "30days")
    assert first == second
    assert first["range"] == "30days"
    assert first["exam"] == ExamCategory.JEE
    assert len(first["points"]) == 30
    assert all(1900 <= p["value"] < 2100 for p in first["points"])


def test_time_series_today_has_one_point(insights):
    assert len(insights.time_series("active_users", window="today")["points"]) == 1


def test_time_series_rejects_bad_input(insights):
    with pytest.raises(errors.InvalidMetricError):
        insights.time_series("revenue")
    with pytest.raises(errors.InvalidRangeError):
        insights.time_series("active_users", window="1y")


def test_subject_accuracy(insights):
    result = insights.subject_accuracy()
    assert result["exam"] == ExamCategory.NEET_PG
    assert [s["subject_name"] for s in result["subjects"]] == [
        "Anatomy", "Biochemistry", "Pathology", "Pharmacology",
    ]


def test_weak_topics_limit_and_prefix(insights):
    two = insights.weak_topics(ExamCategory.NEET_UG, 2)["items"]
    assert len(two) == 2
    assert two[0]["subject_name"] == "NEET UG Pharmacology"
    assert len(insights.weak_topics(limit=100)["items"]) == 4
    assert len(insights.weak_topics(limit=0)["items"]) == 4


def test_upcoming_events_are_relative_to_now(insights):
    items = insights.upcoming_events()["items"]
    assert [i["start_at"] for i in items] == [NOW + timedelta(hours=72), NOW + timedelta(hours=24)]
    assert items[0]["name"] == "NEET PG - High Yield Bio Mock"


def test_referral_summary_windows(insights):
    assert insights.referral_summary("today")["total_referrals"] == 28
    assert insights.referral_summary("7d")["rewards_paid"] == 4200
    default = insights.referral_summary()
    assert default["range"] == "30d"
    assert (default["total_referrals"], default["rewards_paid"], default["new_users"]) == (980, 18200, 320)
    assert insights.referral_summary("anything")["new_users"] == 320


def test_analytics_endpoints(client, admin_headers):
    r = client.get("/admin/analytics/time-series", params={"metric": "active_users", "range": "today"},
                   headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["exam"] == "NEET_PG"
    assert len(body["points"]) == 1

    r = client.get("/admin/analytics/time-series", params={"metric": "bogus"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid metric"

    r = client.get("/admin/analytics/time-series", headers=admin_headers)
    assert r.status_code == 400

    r = client.get("/admin/analytics/weak-topics", headers=admin_headers)
    assert len(r.json()["items"]) == 4
    assert set(r.json()["items"][0]) == {"subjectId", "subjectName", "topicId", "topicName", "accuracy", "attempts"}

    r = client.get("/admin/events/upcoming", params={"exam": "JEE"}, headers=admin_headers)
    assert r.json()["items"][0]["registeredCount"] == 2420

    r = client.get("/admin/referrals/summary", params={"range": "7d"}, headers=admin_headers)
    assert r.json() == {"range": "7d", "totalReferrals": 210, "rewardsPaid": 4200, "newUsers": 75}


def test_analytics_overview_counts_real_attempts(client, admin_headers, login_learner, seed_questions):
    headers, _ = login_learner()
    seed_questions(count=2)
    session = client.post("/practice/sessions", json={"mode": "smart", "numQuestions": 2}, headers=headers).json()
    detail = client.get(f"/practice/sessions/{session['id']}", headers=headers).json()
    first = detail["questions"][0]
    client.post(f"/practice/sessions/{session['id']}/answers",
                json={"sessionQuestionId": first["id"], "selectedOption": 2, "timeTakenMs": 4000},
                headers=headers)

    r = client.get("/admin/analytics/overview", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["totalUsers"] == 1
    assert body["questionsAnswered"] == 1
    assert body["averageAccuracy"] == 1.0


def test_weak_topics_limit_parsing(client, admin_headers):
    def count(**params):
        r = client.get("/admin/analytics/weak-topics", params=params, headers=admin_headers)
        assert r.status_code == 200
        return len(r.json()["items"])

    assert count(limit="2") == 2
    assert count(limit="abc") == 4
    assert count(limit="-3") == 4
    assert count(limit="0") == 4
