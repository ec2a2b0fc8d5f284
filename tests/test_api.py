import pandas as pd

from seating.db_models import utcnow


def seed(client, students=4, agency=None):
    cohort = client.post("/cohorts", json={"name": "Paramedic 12"}).json()
    classroom = client.post("/classrooms", json={"name": "Lab A"}).json()
    ids = []
    for i in range(students):
        resp = client.post(
            "/students",
            json={"cohort_id": cohort["id"], "first_name": f"Stu{i}", "last_name": f"L{i:02d}", "agency": agency},
        )
        assert resp.status_code == 200
        ids.append(resp.json()["id"])
    chart = client.post("/charts", json={"cohort_id": cohort["id"], "classroom_id": classroom["id"]}).json()
    return cohort, classroom, ids, chart


def test_root(client):
    assert client.get("/").json() == {"message": "Seating Chart API is running !"}


def test_generate_and_fetch_chart(client):
    cohort, _, ids, chart = seed(client)
    assert chart["name"] == "Paramedic 12 Seating"

    client.post("/learning-styles", json={"student_id": ids[3], "primary_style": "audio", "social_style": "independent"})
    client.post("/preferences", json={"student_id": ids[0], "other_student_id": ids[1], "preference_type": "avoid"})

    resp = client.post(f"/charts/{chart['id']}/generate")
    assert resp.status_code == 200
    body = resp.json()
    assert body["stats"]["total_students"] == 4
    assert body["stats"]["placed"] == 4
    assert body["stats"]["by_learning_style"]["audio"] == 1
    assert body["assignments"][0] == {
        "student_id": ids[3],
        "table_number": 1,
        "seat_position": 1,
        "row_number": 1,
        "is_overflow": False,
    }

    detail = client.get(f"/charts/{chart['id']}").json()
    assert len(detail["assignments"]) == 4
    assert detail["unassigned_students"] == []
    assert detail["classroom"]["seats_per_table"] == 3
    assert detail["learning_styles"][0]["student_id"] == ids[3]
    assert detail["preferences"][0]["kind"] == "avoid"
    tables = {a["student_id"]: a["table_number"] for a in detail["assignments"]}
    assert tables[ids[0]] != tables[ids[1]]


def test_regenerating_replaces_previous_assignments(client):
    _, _, _, chart = seed(client, students=5)

    client.post(f"/charts/{chart['id']}/generate")
    client.post(f"/charts/{chart['id']}/generate")

    assert len(client.get(f"/charts/{chart['id']}").json()["assignments"]) == 5


def test_inactive_students_are_not_seated(client):
    cohort, _, ids, chart = seed(client, students=2)
    client.post(
        "/students",
        json={"cohort_id": cohort["id"], "first_name": "Gone", "last_name": "Away", "status": "inactive"},
    )

    body = client.post(f"/charts/{chart['id']}/generate").json()

    assert body["stats"]["total_students"] == 2


def test_manual_save_and_unassigned_view(client):
    _, _, ids, chart = seed(client, students=3)

    resp = client.put(
        f"/charts/{chart['id']}/assignments",
        json={"assignments": [
            {"student_id": ids[0], "table_number": 3, "seat_position": 2, "row_number": 2},
            {"student_id": ids[1], "table_number": 0, "seat_position": 1, "row_number": 5, "is_overflow": True},
        ]},
    )
    assert resp.status_code == 200
    assert resp.json()["saved"] == 2

    detail = client.get(f"/charts/{chart['id']}").json()
    assert [a["table_number"] for a in detail["assignments"]] == [3, 0]
    assert [s["id"] for s in detail["unassigned_students"]] == [ids[2]]


def test_manual_save_rejects_bad_layouts(client):
    _, _, ids, chart = seed(client, students=2)
    url = f"/charts/{chart['id']}/assignments"

    wrong_row = {"assignments": [{"student_id": ids[0], "table_number": 3, "seat_position": 1, "row_number": 1}]}
    same_seat = {"assignments": [
        {"student_id": ids[0], "table_number": 1, "seat_position": 1, "row_number": 1},
        {"student_id": ids[1], "table_number": 1, "seat_position": 1, "row_number": 1},
    ]}
    stranger = {"assignments": [{"student_id": 999, "table_number": 1, "seat_position": 1, "row_number": 1}]}

    assert client.put(url, json=wrong_row).status_code == 400
    assert client.put(url, json=same_seat).status_code == 400
    assert client.put(url, json=stranger).status_code == 400
    assert client.get(f"/charts/{chart['id']}").json()["assignments"] == []


def test_learning_style_upsert_and_delete(client):
    cohort, _, ids, _ = seed(client, students=1)

    first = client.post("/learning-styles", json={"student_id": ids[0], "primary_style": "visual"}).json()
    second = client.post(
        "/learning-styles",
        json={"student_id": ids[0], "primary_style": "kinesthetic", "assessed_date": "2026-09-01"},
    ).json()

    assert first["id"] == second["id"]
    assert second["primary_style"] == "kinesthetic"
    assert second["assessed_date"] == "2026-09-01"
    assert len(client.get("/learning-styles", params={"cohort_id": cohort["id"]}).json()) == 1

    assert client.post("/learning-styles", json={"student_id": ids[0], "primary_style": "smell"}).status_code == 422
    assert client.delete(f"/learning-styles/{first['id']}").status_code == 200
    assert client.delete(f"/learning-styles/{first['id']}").status_code == 404


def test_preference_rules(client):
    cohort, _, ids, _ = seed(client, students=2)

    self_pref = {"student_id": ids[0], "other_student_id": ids[0], "preference_type": "avoid"}
    assert client.post("/preferences", json=self_pref).status_code == 400

    pref = {"student_id": ids[0], "other_student_id": ids[1], "preference_type": "prefer_near"}
    created = client.post("/preferences", json=pref)
    assert created.status_code == 200

    reverse = {"student_id": ids[1], "other_student_id": ids[0], "preference_type": "avoid"}
    assert client.post("/preferences", json=reverse).status_code == 400

    assert len(client.get("/preferences", params={"cohort_id": cohort["id"]}).json()) == 1
    assert client.delete(f"/preferences/{created.json()['id']}").status_code == 200
    assert client.get("/preferences").json() == []


def test_activating_a_chart_deactivates_the_others(client):
    cohort, classroom, _, first = seed(client, students=1)
    second = client.post("/charts", json={"cohort_id": cohort["id"], "name": "Alt"}).json()
    assert second["classroom_id"] == classroom["id"]

    client.put(f"/charts/{first['id']}", json={"is_active": True})
    client.put(f"/charts/{second['id']}", json={"is_active": True, "name": "Final"})

    charts = {c["id"]: c for c in client.get("/charts", params={"cohort_id": cohort["id"]}).json()}
    assert charts[first["id"]]["is_active"] is False
    assert charts[second["id"]]["is_active"] is True
    assert charts[second["id"]]["name"] == "Final"


def test_delete_chart(client):
    _, _, _, chart = seed(client, students=2)
    client.post(f"/charts/{chart['id']}/generate")

    assert client.delete(f"/charts/{chart['id']}").status_code == 200
    assert client.get(f"/charts/{chart['id']}").status_code == 404
    assert client.post(f"/charts/{chart['id']}/generate").status_code == 404


def test_missing_records(client):
    assert client.post("/charts", json={"cohort_id": 42}).status_code == 404
    assert client.post("/students", json={"cohort_id": 42, "first_name": "A", "last_name": "B"}).status_code == 404
    assert client.get("/classrooms/5/tables").status_code == 404
    assert client.get("/reports/learning-styles").status_code == 400


def test_chart_needs_a_classroom(client):
    cohort = client.post("/cohorts", json={"name": "EMT 3"}).json()

    assert client.post("/charts", json={"cohort_id": cohort["id"]}).status_code == 400


def test_classroom_tables(client):
    classroom = client.post("/classrooms", json={"name": "Lab B"}).json()
    again = client.post("/classrooms", json={"name": "Lab B"}).json()
    assert again["id"] == classroom["id"]

    body = client.get(f"/classrooms/{classroom['id']}/tables").json()

    assert body["total_seats"] == 27
    assert body["tables"][1] == {"table_number": 2, "row": 1, "side": "right", "style": "audio", "seats": 3}
    assert body["tables"][-1]["table_number"] == 0


def test_learning_style_report(client):
    cohort, _, ids, chart = seed(client, students=3)
    client.post("/learning-styles", json={"student_id": ids[0], "primary_style": "audio"})
    client.post("/learning-styles", json={"student_id": ids[1], "primary_style": "visual"})
    client.post(f"/charts/{chart['id']}/generate")

    report = client.get("/reports/learning-styles", params={"cohort_id": cohort["id"]}).json()
    assert report["totals"] == {"audio": 1, "visual": 1, "kinesthetic": 0, "unknown": 1}
    assert report["diversity_score"] == 0.5
    assert "by_table" not in report

    by_chart = client.get("/reports/learning-styles", params={"chart_id": chart["id"]}).json()
    assert sum(sum(t["counts"].values()) for t in by_chart["by_table"]) == 3


def test_exports(client):
    _, _, _, chart = seed(client, students=3, agency="County EMS")

    assert client.get(f"/charts/{chart['id']}/export/pdf").status_code == 404

    client.post(f"/charts/{chart['id']}/generate")

    pdf = client.get(f"/charts/{chart['id']}/export/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    xlsx = client.get(f"/charts/{chart['id']}/export/excel")
    assert xlsx.status_code == 200
    assert xlsx.content[:2] == b"PK"


def upload(client, cohort_id, path):
    with open(path, "rb") as fh:
        return client.post(
            "/students/import",
            data={"cohort_id": str(cohort_id)},
            files={"file": (path.name, fh, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        )


def test_import_workbook(client, tmp_path):
    cohort = client.post("/cohorts", json={"name": "Paramedic 13"}).json()
    path = tmp_path / "roster.xlsx"
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame([
            {"id": 10, "first_name": "Ann", "last_name": "Lee", "agency": "Metro Fire"},
            {"id": 11, "first_name": "Bo", "last_name": "Kim", "agency": "Metro Fire"},
        ]).to_excel(writer, sheet_name="students", index=False)
        pd.DataFrame([
            {"student_id": 10, "primary_style": "Visual", "social_style": "social"},
            {"student_id": 99, "primary_style": "audio", "social_style": "social"},
        ]).to_excel(writer, sheet_name="learning_styles", index=False)
        pd.DataFrame([
            {"student_id": 10, "other_student_id": 11, "preference_type": "avoid"},
            {"student_id": 11, "other_student_id": 10, "preference_type": "avoid"},
        ]).to_excel(writer, sheet_name="preferences", index=False)

    resp = upload(client, cohort["id"], path)
    assert resp.status_code == 200
    body = resp.json()
    assert body["inserted"] == 2
    # the row for student 99 has no matching student and is skipped
    assert body["learning_styles"] == 1
    assert body["preferences"] == 1

    again = upload(client, cohort["id"], path).json()
    assert again["inserted"] == 0
    assert again["skipped_duplicates"] == 2

    styles = client.get("/learning-styles", params={"cohort_id": cohort["id"]}).json()
    assert [s["primary_style"] for s in styles] == ["visual"]


def test_import_rejects_corrupt_workbook(client, tmp_path):
    cohort = client.post("/cohorts", json={"name": "Paramedic 14"}).json()
    bad = tmp_path / "corrupt.xlsx"
    bad.write_bytes(b"PK\x03\x04 not really a zip")

    resp = upload(client, cohort["id"], bad)

    assert resp.status_code == 400
    assert "Excel read failed" in resp.json()["detail"]
    assert client.get("/students", params={"cohort_id": cohort["id"]}).json() == []


def test_import_requires_an_upload(client):
    cohort = client.post("/cohorts", json={"name": "Paramedic 15"}).json()

    resp = client.post("/students/import", json={"cohort_id": cohort["id"], "file_path": "/etc/passwd"})

    assert resp.status_code == 422


def test_chart_timestamps_are_utc():
    assert utcnow().utcoffset().total_seconds() == 0
