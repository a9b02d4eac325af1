import csv

from audit_logger import AuditLogger


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


def test_first_event_writes_header(tmp_path):
    path = tmp_path / "audit" / "trail.csv"
    logger = AuditLogger(filepath=str(path))

    logger.log_event("Client Connected", connection="abc123")

    rows = read_rows(path)
    assert rows[0] == AuditLogger.HEADER
    assert rows[1][1:] == ["Client Connected", "abc123", ""]


def test_details_are_json_and_missing_connection_is_na(tmp_path):
    path = tmp_path / "trail.csv"
    logger = AuditLogger(filepath=str(path))

    logger.log_event("Server Started", details={"port": 5001})

    assert read_rows(path)[1][2:] == ["N/A", '{"port": 5001}']


def test_existing_file_keeps_single_header(tmp_path):
    path = tmp_path / "trail.csv"
    AuditLogger(filepath=str(path)).log_event("Login Failed", connection="a")
    AuditLogger(filepath=str(path)).log_event("Login Succeeded", connection="a")

    rows = read_rows(path)
    assert [row[1] for row in rows] == ["Event", "Login Failed", "Login Succeeded"]
