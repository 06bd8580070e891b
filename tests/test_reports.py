from datetime import date, datetime, timezone

from grm.services.report_service import CSV_HEADERS, csv_row, export_csv, export_filename, filter_report, report_summary


def _req(rid, created, **kw):
    doc = {
        "id": rid, "room_number": "101", "department": "Housekeeping", "priority": "Medium",
        "description": "Extra towels", "logged_by": "Ana", "status": "Open",
        "created_at": created, "updated_at": created,
    }
    doc.update(kw)
    return doc


def test_end_date_covers_the_whole_day():
    reqs = [
        _req("a", datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)),
        _req("b", datetime(2025, 3, 2, 23, 59, 59, tzinfo=timezone.utc)),
        _req("c", datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)),
        _req("d", datetime(2025, 2, 28, 23, 59, tzinfo=timezone.utc)),
    ]
    out = filter_report(reqs, start_date=date(2025, 3, 1), end_date=date(2025, 3, 2))
    assert [r["id"] for r in out] == ["b", "a"]


def test_search_covers_people_as_well_as_room_and_description():
    when = datetime(2025, 3, 1, tzinfo=timezone.utc)
    reqs = [
        _req("a", when, assigned_to="Marco"),
        _req("b", when, logged_by="Beatriz"),
        _req("c", when, description="Broken lamp"),
    ]
    assert [r["id"] for r in filter_report(reqs, search="marco")] == ["a"]
    assert [r["id"] for r in filter_report(reqs, search="BEA")] == ["b"]
    assert [r["id"] for r in filter_report(reqs, search="lamp")] == ["c"]


def test_filters_accept_all_wildcard():
    when = datetime(2025, 3, 1, tzinfo=timezone.utc)
    reqs = [_req("a", when, priority="High"), _req("b", when, priority="Low", status="Resolved")]
    assert len(filter_report(reqs, department="All", priority="All", status="All")) == 2
    assert [r["id"] for r in filter_report(reqs, status="Resolved")] == ["b"]


def test_summary_counts_each_status():
    when = datetime(2025, 3, 1, tzinfo=timezone.utc)
    reqs = [_req("a", when), _req("b", when, status="Resolved"), _req("c", when, status="Resolved")]
    assert report_summary(reqs) == {"total": 3, "Open": 1, "In Progress": 0, "Resolved": 2}


def test_csv_row_quoting():
    created = datetime(2025, 3, 1, 15, 4, 5, tzinfo=timezone.utc)
    row = csv_row(_req(
        "r1", created,
        description='Guest says "urgent", please hurry',
        status="Resolved",
        resolved_at=created,
        resolution_comments="Done",
    ))
    assert row == (
        'r1,101,Housekeeping,Medium,Resolved,'
        '"Guest says ""urgent"", please hurry",Ana,,'
        '"03/01/2025, 03:04:05 PM","03/01/2025, 03:04:05 PM","03/01/2025, 03:04:05 PM",'
        '"Done"'
    )


def test_csv_row_leaves_missing_values_empty():
    created = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    cells = csv_row(_req("r2", created, description="plain")).split(",")
    assert cells[5] == '"plain"'
    assert cells[-1] == ""
    assert cells[-2] == ""


def test_export_has_header_and_one_line_per_request():
    when = datetime(2025, 3, 1, tzinfo=timezone.utc)
    text = export_csv([_req("a", when), _req("b", when)])
    lines = text.split("\n")
    assert lines[0] == ",".join(CSV_HEADERS)
    assert len(lines) == 3
    assert lines[1].startswith("a,")


def test_export_of_nothing_is_just_the_header():
    assert export_csv([]) == ",".join(CSV_HEADERS)


def test_export_filename_uses_the_date():
    assert export_filename(date(2025, 3, 1)) == "hotel-requests-report-2025-03-01.csv"
