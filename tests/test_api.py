import io
import math
from datetime import date

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from geoattend.api import deps
from geoattend.exceptions import StoreUnavailableError
from geoattend.geo import EARTH_RADIUS_M
from geoattend.main import app
from geoattend.stores.base import StaticRoster

from tests.conftest import ANCHOR_LAT, ANCHOR_LON, ROSTER, TODAY


@pytest.fixture
def principal(student):
    return {"current": student}


@pytest.fixture
def client(tokens, ledger, overrides, holidays, anchor, principal):
    app.dependency_overrides[deps.get_token_store] = lambda: tokens
    app.dependency_overrides[deps.get_ledger] = lambda: ledger
    app.dependency_overrides[deps.get_override_store] = lambda: overrides
    app.dependency_overrides[deps.get_holiday_store] = lambda: holidays
    app.dependency_overrides[deps.get_roster] = lambda: StaticRoster(ROSTER)
    app.dependency_overrides[deps.get_anchor] = lambda: anchor
    app.dependency_overrides[deps.get_today] = lambda: TODAY
    app.dependency_overrides[deps.get_current_user] = lambda: principal["current"]
    yield TestClient(app)
    app.dependency_overrides.clear()


def verify_body(**overrides):
    body = {
        "day": TODAY.isoformat(),
        "token": "AB12CD34EF56",
        "latitude": ANCHOR_LAT,
        "longitude": ANCHOR_LON,
        "accuracy_meters": 12.5,
        "device_id": "device-x9y8z7",
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_verify_marks_then_reports_already_marked(client, tokens, ledger):
    tokens.seed(TODAY, "AB12CD34EF56")
    res = client.post("/api/attendance/verify", json=verify_body())
    assert res.status_code == 201
    assert res.json()["status"] == "marked"
    assert res.json()["student_id"] == ROSTER[0]
    assert (ROSTER[0], TODAY) in ledger.records

    res = client.post("/api/attendance/verify", json=verify_body())
    assert res.status_code == 200
    assert res.json()["status"] == "already_marked"


def test_verify_invalid_token(client, tokens):
    tokens.seed(TODAY, "AB12CD34EF56")
    res = client.post("/api/attendance/verify", json=verify_body(token="NOPE"))
    assert res.status_code == 200
    assert res.json()["status"] == "invalid_token"


def test_verify_outside_range(client, tokens):
    tokens.seed(TODAY, "AB12CD34EF56")
    lat = ANCHOR_LAT + math.degrees(250 / EARTH_RADIUS_M)
    res = client.post("/api/attendance/verify", json=verify_body(latitude=lat, accuracy_meters=5))
    body = res.json()
    assert body["status"] == "outside_range"
    assert body["distance_meters"] == pytest.approx(250, abs=0.5)
    assert body["accuracy_meters"] == 5


def test_verify_location_unavailable(client, tokens):
    tokens.seed(TODAY, "AB12CD34EF56")
    res = client.post(
        "/api/attendance/verify", json=verify_body(latitude=None, longitude=None, accuracy_meters=None)
    )
    assert res.json()["status"] == "location_unavailable"


@pytest.mark.parametrize(
    "overrides",
    [{"accuracy_meters": 0}, {"accuracy_meters": None}, {"token": ""}, {"day": "03/01/2024"}, {"latitude": 95}],
)
def test_verify_malformed_input_is_422(client, tokens, ledger, overrides):
    tokens.seed(TODAY, "AB12CD34EF56")
    res = client.post("/api/attendance/verify", json=verify_body(**overrides))
    assert res.status_code == 422
    assert ledger.records == {}


def test_verify_store_failure_is_503(client, tokens, ledger, monkeypatch):
    tokens.seed(TODAY, "AB12CD34EF56")

    async def broken(*args, **kwargs):
        raise StoreUnavailableError("primary stepped down")

    monkeypatch.setattr(ledger, "try_create", broken)
    res = client.post("/api/attendance/verify", json=verify_body())
    assert res.status_code == 503
    assert res.headers["Retry-After"] == "1"


def test_admin_cannot_use_student_verify(client, principal, admin, tokens):
    principal["current"] = admin
    tokens.seed(TODAY, "AB12CD34EF56")
    assert client.post("/api/attendance/verify", json=verify_body()).status_code == 403


def test_student_cannot_issue_tokens(client):
    assert client.post(f"/api/tokens/{TODAY.isoformat()}").status_code == 403


def test_issue_and_read_token(client, principal, admin):
    principal["current"] = admin
    assert client.get("/api/tokens/today").status_code == 404

    res = client.post(f"/api/tokens/{TODAY.isoformat()}")
    assert res.status_code == 201
    body = res.json()
    assert len(body["token"]) == 12
    assert body["mark_url"].endswith(f"/attendance/mark?date={TODAY.isoformat()}&token={body['token']}")

    assert client.get("/api/tokens/today").json()["token"] == body["token"]
    assert client.get("/api/tokens/2024-03-01").json()["token"] == body["token"]
    assert client.get("/api/tokens/not-a-date").status_code == 400


def test_stats_merges_ledger_and_overrides(client, principal, admin, ledger, holidays):
    principal["current"] = admin
    ledger.seed(ROSTER[0], date(2024, 3, 1))
    ledger.seed(ROSTER[1], date(2024, 3, 1))

    res = client.put("/api/overrides/", json={"student_id": ROSTER[1], "day": "2024-03-01", "present": False})
    assert res.status_code == 200
    assert res.json()["recorded_by"] == "admin"
    client.put("/api/overrides/", json={"student_id": ROSTER[2], "day": "2024-03-02", "present": True})
    client.post("/api/holidays/", json={"day": "2024-03-05", "note": "Holi"})

    res = client.get("/api/attendance/stats", params={"from_date": "2024-03-01", "to_date": "2024-03-07"})
    assert res.status_code == 200
    stats = res.json()
    assert len(stats["instructional_days"]) == 5
    assert stats["per_student"][ROSTER[0]] == {"present": 1, "total": 5, "percentage": 20}
    assert stats["per_student"][ROSTER[1]]["present"] == 0
    assert stats["per_student"][ROSTER[2]]["present"] == 1
    assert stats["cohort_present"] == 2
    assert stats["cohort_total"] == 15
    assert stats["percentage"] == 13


def test_stats_student_filter_and_unknown_student(client, principal, admin):
    principal["current"] = admin
    params = {"from_date": "2024-03-01", "to_date": "2024-03-07"}
    res = client.get("/api/attendance/stats", params={**params, "student_id": ROSTER[0]})
    assert list(res.json()["per_student"]) == [ROSTER[0]]
    res = client.get("/api/attendance/stats", params={**params, "student_id": "nobody"})
    assert res.status_code == 404


def test_stats_reversed_range_is_422(client, principal, admin):
    principal["current"] = admin
    res = client.get("/api/attendance/stats", params={"from_date": "2024-03-07", "to_date": "2024-03-01"})
    assert res.status_code == 422


def test_student_cannot_read_stats(client):
    res = client.get("/api/attendance/stats", params={"from_date": "2024-03-01", "to_date": "2024-03-07"})
    assert res.status_code == 403


def test_register_and_csv_report(client, principal, admin, ledger):
    principal["current"] = admin
    ledger.seed(ROSTER[0], date(2024, 3, 1))
    params = {"from_date": "2024-03-01", "to_date": "2024-03-02"}

    rows = client.get("/api/attendance/register", params=params).json()
    assert len(rows) == len(ROSTER) * 2
    assert rows[0] == {"student_id": ROSTER[0], "day": "2024-03-01", "present": True, "source": "auto"}

    res = client.get("/api/attendance/report", params=params)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    df = pd.read_csv(io.StringIO(res.text), dtype=str)
    assert list(df.columns) == ["Roll Number", "2024-03-01", "2024-03-02", "Present", "Total"]
    first = df.iloc[0]
    assert first["Roll Number"] == ROSTER[0]
    assert first["2024-03-01"] == "Present"
    assert first["2024-03-02"] == "Absent"
    assert first["Present"] == "1"


def test_excel_report(client, principal, admin, ledger):
    principal["current"] = admin
    ledger.seed(ROSTER[1], date(2024, 3, 2))
    res = client.get(
        "/api/attendance/report", params={"from_date": "2024-03-01", "to_date": "2024-03-02", "format": "excel"}
    )
    assert res.status_code == 200
    df = pd.read_excel(io.BytesIO(res.content), dtype=str)
    assert df.loc[df["Roll Number"] == ROSTER[1], "2024-03-02"].item() == "Present"


def test_report_lists_roster_when_range_has_no_instructional_days(client, principal, admin):
    principal["current"] = admin
    # 2024-03-03 is a Sunday
    res = client.get("/api/attendance/report", params={"from_date": "2024-03-03", "to_date": "2024-03-03"})
    assert res.status_code == 200
    df = pd.read_csv(io.StringIO(res.text), dtype=str)
    assert list(df.columns) == ["Roll Number", "Present", "Total"]
    assert list(df["Roll Number"]) == ROSTER
    assert set(df["Present"]) == {"0"}
    assert set(df["Total"]) == {"0"}


def test_report_student_filter(client, principal, admin, ledger):
    principal["current"] = admin
    ledger.seed(ROSTER[2], date(2024, 3, 1))
    res = client.get(
        "/api/attendance/report",
        params={"from_date": "2024-03-01", "to_date": "2024-03-01", "student_id": ROSTER[2]},
    )
    df = pd.read_csv(io.StringIO(res.text), dtype=str)
    assert list(df["Roll Number"]) == [ROSTER[2]]
    assert df.iloc[0]["2024-03-01"] == "Present"


def test_override_clear_and_list(client, principal, admin):
    principal["current"] = admin
    client.put("/api/overrides/", json={"student_id": ROSTER[0], "day": "2024-03-01", "present": True})
    listed = client.get("/api/overrides/", params={"from_date": "2024-03-01", "to_date": "2024-03-01"}).json()
    assert [(o["student_id"], o["present"], o["source"]) for o in listed] == [(ROSTER[0], True, "manual")]

    assert client.delete(f"/api/overrides/{ROSTER[0]}/2024-03-01").status_code == 204
    assert client.delete(f"/api/overrides/{ROSTER[0]}/2024-03-01").status_code == 404


def test_holiday_lifecycle(client, principal, admin):
    principal["current"] = admin
    assert client.post("/api/holidays/", json={"day": "2024-03-25", "note": "Holi"}).status_code == 201
    assert client.post("/api/holidays/", json={"day": "2024-03-25", "note": "Holi (moved)"}).status_code == 201
    listed = client.get("/api/holidays/").json()
    assert listed == [{"day": "2024-03-25", "note": "Holi (moved)"}]
    assert client.get("/api/holidays/", params={"from_date": "2024-03-01"}).status_code == 400
    assert client.delete("/api/holidays/2024-03-25").status_code == 204
    assert client.delete("/api/holidays/2024-03-25").status_code == 404


def test_admin_recovery_delete(client, principal, admin, ledger):
    ledger.seed(ROSTER[0], TODAY)
    assert client.delete(f"/api/attendance/records/{ROSTER[0]}/{TODAY.isoformat()}").status_code == 403
    principal["current"] = admin
    assert client.delete(f"/api/attendance/records/{ROSTER[0]}/{TODAY.isoformat()}").status_code == 204
    assert ledger.records == {}


def test_student_history(client, ledger):
    ledger.seed(ROSTER[0], date(2024, 2, 28))
    ledger.seed(ROSTER[0], date(2024, 2, 29))
    ledger.seed(ROSTER[1], date(2024, 2, 29))
    days = [r["day"] for r in client.get("/api/attendance/me").json()]
    assert days == ["2024-02-29", "2024-02-28"]
