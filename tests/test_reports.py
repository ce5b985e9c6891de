import csv
import datetime as dt

from pymongo.errors import PyMongoError

from admin import _safe_load
from reports import (
    bookings_to_csv,
    compute_stats,
    export_filename,
    filter_bookings,
    search_users,
    sort_users,
    toggle_sort,
)
from tests.helpers import auth, booking_payload, enrollment_payload, signup

TODAY = dt.date(2025, 5, 15)

USERS = [
    {"id": "u1", "name": "emma Johnson", "email": "emma@example.com", "active": True},
    {"id": "u2", "name": "John Smith", "email": "john@example.com", "active": True},
    {"id": "u3", "name": "Michael Brown", "email": "amike@example.com", "active": False},
]

BOOKINGS = [
    {"id": "b1", "user_id": "u2", "date": "2025-05-15", "price": 50, "status": "confirmed"},
    {"id": "b2", "user_id": "u2", "date": "2025-05-10", "price": 50, "status": "pending"},
    {"id": "b3", "user_id": "u1", "date": "2025-04-20", "price": 60, "status": "confirmed"},
    {"id": "b4", "user_id": "u2", "date": "2025-05-22", "price": 50, "status": "confirmed"},
    {"id": "b5", "user_id": "u2", "date": "2025-03-01", "price": 70, "status": "confirmed"},
    {"id": "b6", "user_id": "u1", "date": "2025-05-14", "price": 40, "status": "cancelled"},
    {"id": "b7", "user_id": "u3", "date": None, "price": 10, "status": "pending"},
]

TEAMS = [
    {"players": [{"name": "A", "age": "9"}, {"name": "B", "age": "10"}]},
    {"players": [{"name": "C", "age": "11"}]},
    {},
]


class BrokenCollection:
    def find(self, *args, **kwargs):
        raise PyMongoError("connection refused")


class BrokenDB:
    def __getitem__(self, name):
        return BrokenCollection()


def test_dashboard_stats():
    stats = compute_stats(USERS, BOOKINGS, TEAMS, TODAY)

    assert stats.total_users == 3
    assert stats.active_users == 2
    assert stats.total_bookings == 7
    assert stats.pending_bookings == 2
    # b1, b2, b4 fall on or after 2025-05-08; cancelled b6 is excluded
    assert stats.revenue_weekly == 150
    # b3 is within 30 days as well
    assert stats.revenue_monthly == 210
    assert stats.premium_teams == 3
    assert stats.premium_players == 3


def test_booking_filters():
    ids = lambda kind: [b["id"] for b in filter_bookings(BOOKINGS, kind, TODAY)]

    assert ids("today") == ["b1"]
    assert ids("thisWeek") == ["b1", "b4"]
    assert ids("pending") == ["b2", "b7"]
    assert ids("confirmed") == ["b1", "b3", "b4", "b5"]
    assert ids("all") == [b["id"] for b in BOOKINGS]


def test_date_filters_skip_bookings_without_a_date():
    undated = [{"id": "x", "date": None, "status": "pending"}]

    assert filter_bookings(undated, "today", TODAY) == []
    assert filter_bookings(undated, "thisWeek", TODAY) == []
    assert filter_bookings(undated, "all", TODAY) == undated


def test_sort_users_by_text_fields():
    assert [u["id"] for u in sort_users(USERS, BOOKINGS, "name", "asc")] == ["u1", "u2", "u3"]
    assert [u["id"] for u in sort_users(USERS, BOOKINGS, "name", "desc")] == ["u3", "u2", "u1"]
    assert [u["id"] for u in sort_users(USERS, BOOKINGS, "email", "asc")] == ["u3", "u1", "u2"]


def test_sort_users_ignores_accents_and_case():
    users = [{"id": "z", "name": "Zoe"}, {"id": "e", "name": "Émile"}, {"id": "a", "name": "adam"}]

    assert [u["id"] for u in sort_users(users, [], "name", "asc")] == ["a", "e", "z"]
    assert [u["id"] for u in sort_users(users, [], "name", "desc")] == ["z", "e", "a"]


def test_sort_users_by_booking_count():
    assert [u["id"] for u in sort_users(USERS, BOOKINGS, "bookings", "desc")] == ["u2", "u1", "u3"]
    assert [u["id"] for u in sort_users(USERS, BOOKINGS, "bookings", "asc")] == ["u3", "u1", "u2"]


def test_toggle_sort():
    assert toggle_sort("name", "asc", "name") == ("name", "desc")
    assert toggle_sort("name", "desc", "name") == ("name", "asc")
    assert toggle_sort("name", "desc", "email") == ("email", "asc")


def test_search_users():
    assert [u["id"] for u in search_users(USERS, "JOHN")] == ["u1", "u2"]
    assert len(search_users(USERS, "")) == 3


def test_csv_export_quotes_fields_with_commas():
    bookings = [
        {"id": "b1", "user_name": "Smith, John", "ground_name": "Premium Stadium", "date": dt.date(2025, 5, 1),
         "start_time": "08:00", "end_time": "10:00", "price": 50.0, "status": "confirmed"},
        {"id": "b2", "user_name": "Emma", "ground_name": "Training Ground", "date": "2025-05-02",
         "start_time": "10:00", "end_time": "12:00", "price": 42.5, "status": "pending"},
    ]

    text = bookings_to_csv(bookings)
    lines = text.splitlines()

    assert len(lines) == 3
    assert lines[0] == "ID,User,Ground,Date,Start Time,End Time,Price,Status"
    assert lines[1] == 'b1,"Smith, John",Premium Stadium,2025-05-01,08:00,10:00,50,confirmed'
    assert lines[2] == "b2,Emma,Training Ground,2025-05-02,10:00,12:00,42.5,pending"
    rows = list(csv.reader(lines))
    assert all(len(row) == 8 for row in rows)
    assert rows[1][1] == "Smith, John"


def test_csv_export_of_nothing_is_header_only():
    assert bookings_to_csv([]).splitlines() == ["ID,User,Ground,Date,Start Time,End Time,Price,Status"]


def test_dashboard_reads_degrade_to_empty():
    assert _safe_load(BrokenDB(), "user") == []


# ----------------------------------------------------------------------------
# Admin endpoints
# ----------------------------------------------------------------------------
def test_admin_summary_endpoint(client, member, admin):
    client.post("/bookings", json=booking_payload(date=dt.date.today().isoformat()), headers=auth(member["token"]))
    client.post("/premiumTeams", json=enrollment_payload(), headers=auth(member["token"]))

    res = client.get("/admin/summary", headers=auth(admin["token"]))

    assert res.status_code == 200
    body = res.json()
    assert body["totalUsers"] == 2
    assert body["totalBookings"] == 1
    assert body["revenueWeekly"] == 50
    assert body["premiumTeams"] == 1
    assert body["premiumPlayers"] == 2
    assert client.get("/admin/summary", headers=auth(member["token"])).status_code == 403


def test_admin_user_table(client, member, admin):
    client.post("/bookings", json=booking_payload(), headers=auth(member["token"]))

    res = client.get("/admin/users", params={"sort": "bookings", "direction": "desc"}, headers=auth(admin["token"]))

    assert res.status_code == 200
    rows = res.json()
    assert rows[0]["email"] == "jo@x.com"
    assert rows[0]["bookingCount"] == 1
    assert rows[1]["bookingCount"] == 0


def test_admin_deactivates_user(client, member, admin):
    res = client.patch(
        f"/admin/users/{member['user']['id']}/status", json={"active": False}, headers=auth(admin["token"]),
    )

    assert res.status_code == 200
    assert res.json()["active"] is False
    summary = client.get("/admin/summary", headers=auth(admin["token"])).json()
    assert summary["activeUsers"] == 1


def test_admin_booking_filter_endpoint(client, member, admin):
    client.post("/bookings", json=booking_payload(status="pending"), headers=auth(member["token"]))
    client.post("/bookings", json=booking_payload(startTime="10:00", endTime="12:00"), headers=auth(member["token"]))

    res = client.get("/admin/bookings", params={"filter": "pending"}, headers=auth(admin["token"]))

    assert res.status_code == 200
    assert [b["status"] for b in res.json()] == ["pending"]
    assert client.get("/admin/bookings", params={"filter": "bogus"}, headers=auth(admin["token"])).status_code == 400


def test_admin_csv_download(client, member, admin):
    client.post("/bookings", json=booking_payload(), headers=auth(member["token"]))

    res = client.get("/admin/bookings/export", headers=auth(admin["token"]))

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert export_filename(dt.date.today()) in res.headers["content-disposition"]
    lines = res.text.splitlines()
    assert len(lines) == 2
    assert ",Jo,Premium Stadium," in lines[1]


def test_programs_and_packages(client, member, admin):
    program = client.post(
        "/admin/programs",
        json={"package": "Elite Package", "coach": "David Chen", "startDate": "2025-05-01",
              "endDate": "2025-05-31", "trainingDays": ["Monday"]},
        headers=auth(admin["token"]),
    )
    assert program.status_code == 201
    sam = signup(client, "Sam", "sam@x.com", "secret2")
    client.post("/premiumTeams", json=enrollment_payload(), headers=auth(member["token"]))
    client.post("/premiumTeams", json=enrollment_payload(), headers=auth(sam["token"]))
    client.post("/premiumTeams", json=enrollment_payload(package="Basic Package"), headers=auth(sam["token"]))

    programs = client.get("/admin/programs", headers=auth(member["token"]))
    packages = client.get("/admin/programs/packages", headers=auth(admin["token"]))

    assert [p["package"] for p in programs.json()] == ["Elite Package"]
    assert packages.json() == ["Premium Package", "Basic Package"]
    assert client.post(
        "/admin/programs", json={"package": "X"}, headers=auth(member["token"]),
    ).status_code in (400, 403)
