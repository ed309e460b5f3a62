"""
HTTP tests for admin stats, pin listing, CSV downloads and profile pages.
"""
import csv
import io

from fastapi.testclient import TestClient

from nfc_profiles.config import Settings
from nfc_profiles.main import create_app
from nfc_profiles.store import InMemoryProfileStore


def parse(text):
    return list(csv.reader(io.StringIO(text, newline="")))


def test_stats(client):
    r = client.get("/admin/stats")
    assert r.status_code == 200
    assert r.json() == {"total": 3, "claimed": 2, "unclaimed": 1}


def test_list_pins_by_status(client):
    claimed = client.get("/admin/pins", params={"status": "claimed"}).json()
    unclaimed = client.get("/admin/pins", params={"status": "unclaimed"}).json()
    everything = client.get("/admin/pins").json()

    # newest lastUpdated first
    assert [p["code"] for p in claimed] == ["A3", "A1"]
    assert [p["code"] for p in unclaimed] == ["A2"]
    assert [p["code"] for p in everything] == ["A2", "A3", "A1"]
    assert claimed[1]["firstName"] == "Ann"


def test_list_pins_rejects_unknown_status(client):
    assert client.get("/admin/pins", params={"status": "lost"}).status_code == 422


def test_export_claimed_pins(client):
    r = client.get("/admin/exports/claimed-pins.csv")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"] == 'attachment; filename="claimed_pins.csv"'
    assert r.text.splitlines()[0] == '"Code","Claimed","UID","Name","Email","Organization"'
    assert parse(r.text) == [
        ["Code", "Claimed", "UID", "Name", "Email", "Organization"],
        ["A1", "Yes", "u1", "Ann", "ann@example.com", "Acme, Inc."],
        ["A2", "No", "", "", "", ""],
        ["A3", "Yes", "u3", 'Bob "B" Ray', "", ""],
    ]


def test_export_analytics(client):
    r = client.get("/admin/exports/analytics.csv")

    assert r.status_code == 200
    assert r.headers["content-disposition"] == 'attachment; filename="analytics_export.csv"'
    rows = parse(r.text)
    assert rows[0][-2:] == ["Last Updated", "Viewed At"]
    assert rows[1][8] == "03/01/2024, 10:00:00 AM"
    assert rows[1][9] == "-"


def test_export_pins_by_status(client):
    r = client.get("/admin/exports/pins/unclaimed.csv")

    assert r.status_code == 200
    assert r.headers["content-disposition"] == 'attachment; filename="unclaimed_pins.csv"'
    rows = parse(r.text)
    header = rows[0]
    assert len(rows) == 2
    row = dict(zip(header, rows[1]))
    assert row["Code"] == "A2"
    assert row["Claimed"] == "No"
    assert row["Views"] == "0"
    assert row["Downloads"] == "0"
    assert row["Created"] == "-"

    claimed = parse(client.get("/admin/exports/pins/claimed.csv").text)
    views = claimed[0].index("Views")
    assert [(r[0], r[views]) for r in claimed[1:]] == [("A3", "2"), ("A1", "7")]


def test_export_pins_unknown_status(client):
    assert client.get("/admin/exports/pins/lost.csv").status_code == 422


def test_export_with_no_profiles():
    client = TestClient(create_app(InMemoryProfileStore()))

    r = client.get("/admin/exports/claimed-pins.csv")

    assert r.status_code == 200
    assert r.text == '"Code","Claimed","UID","Name","Email","Organization"'


def test_public_profile_records_view(client, store):
    r = client.get("/profiles/A1")

    assert r.status_code == 200
    assert r.json()["name"] == "Ann"

    record = store.get("A1")
    assert record.views == 6
    assert record.viewed_at is not None


def test_public_profile_missing_or_unclaimed(client):
    missing = client.get("/profiles/ZZ")
    unclaimed = client.get("/profiles/A2")

    assert missing.status_code == 404
    assert missing.json()["detail"] == "Profile not found"
    assert unclaimed.status_code == 404
    assert unclaimed.json()["detail"] == "Profile has not been claimed"


class FlakyCounterStore(InMemoryProfileStore):
    def increment(self, code, field, amount=1):
        raise RuntimeError("counter backend down")


def test_view_tracking_failure_does_not_fail_request():
    store = FlakyCounterStore({"A1": {"uid": "u1", "name": "Ann"}})
    client = TestClient(create_app(store))

    r = client.get("/profiles/A1")

    assert r.status_code == 200
    assert r.json()["name"] == "Ann"

    vcard = client.get("/profiles/A1/vcard")
    assert vcard.status_code == 200


def test_vcard_download(client, store):
    r = client.get("/profiles/A1/vcard", params={"platform": "android"})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/vcard")
    assert r.headers["content-disposition"] == 'attachment; filename="A1-android.vcf"'
    assert "FN:Ann Lee" in r.text
    assert "URL:http://testserver/profiles/A1" in r.text
    assert store.get("A1").downloads == 1


def test_vcard_for_unclaimed_pin(client):
    assert client.get("/profiles/A2/vcard").status_code == 404


def test_batch_generate_rejects_non_csv(client):
    files = {"file": ("pins.txt", b"code\nA9\n", "text/plain")}
    r = client.post("/admin/batch-generate", files=files)

    assert r.status_code == 422


def test_batch_generate_size_limit():
    client = TestClient(create_app(InMemoryProfileStore(), Settings(UPLOAD_MAX_MB=0)))

    files = {"file": ("pins.csv", b"code\nA9\n", "text/csv")}
    r = client.post("/admin/batch-generate", files=files)

    assert r.status_code == 413


def test_batch_generate_then_stats(client):
    files = {"file": ("pins.csv", b"code,name\nB1,\nB2,Zed\n", "text/csv")}
    r = client.post("/admin/batch-generate", files=files)

    assert r.status_code == 200
    assert r.json()["created"] == ["B1", "B2"]
    assert client.get("/admin/stats").json() == {"total": 5, "claimed": 2, "unclaimed": 3}


def test_invalid_upload_row_does_not_break_admin_views(client):
    files = {"file": ("pins.csv", b"code,claimed\nB1,maybe\nB2,\n", "text/csv")}
    r = client.post("/admin/batch-generate", files=files)

    assert r.status_code == 200
    assert r.json()["created"] == ["B2"]
    assert r.json()["skipped_rows"] == [1]

    assert client.get("/admin/stats").json() == {"total": 4, "claimed": 2, "unclaimed": 2}
    export = client.get("/admin/exports/claimed-pins.csv")
    assert export.status_code == 200
    assert [row[0] for row in parse(export.text)[1:]] == ["A1", "A2", "A3", "B2"]


def test_claim_unclaimed_pin(client, store):
    r = client.post("/profiles/A2/claim", json={"uid": "u2"})

    assert r.status_code == 200
    assert r.json()["uid"] == "u2"
    assert r.json()["claimed"] is True

    record = store.get("A2")
    assert record.is_claimed
    assert record.claimed_at is not None
    assert record.last_updated != "2024-05-01T00:00:00Z"
    assert client.get("/profiles/A2").status_code == 200


def test_claim_new_code_creates_profile(client, store):
    r = client.post("/profiles/NEW1/claim", json={"uid": "u9"})

    assert r.status_code == 200
    assert store.get("NEW1").uid == "u9"


def test_claim_pin_owned_by_someone_else(client, store):
    r = client.post("/profiles/A1/claim", json={"uid": "intruder"})

    assert r.status_code == 409
    assert store.get("A1").uid == "u1"


def test_reclaim_by_owner_keeps_claimed_at(client, store):
    first = client.post("/profiles/A2/claim", json={"uid": "u2"}).json()
    second = client.post("/profiles/A2/claim", json={"uid": "u2"})

    assert second.status_code == 200
    assert second.json()["claimedAt"] == first["claimedAt"]


def test_claim_requires_uid(client):
    assert client.post("/profiles/A2/claim", json={"uid": ""}).status_code == 422


def test_save_profile(client, store):
    body = {
        "uid": "u1",
        "firstName": "  Ann ",
        "lastName": "Lee",
        "email": "ann@example.com",
        "title": "CTO",
        "website": "ann.dev",
        "linkedin": "https://linkedin.com/in/ann",
    }
    r = client.put("/profiles/A1", json=body)

    assert r.status_code == 200
    record = store.get("A1")
    assert record.first_name == "Ann"
    assert record.title == "CTO"
    assert record.website == "https://ann.dev"
    assert record.linkedin == "https://linkedin.com/in/ann"
    assert record.name == "Ann"
    assert record.view_count == 7
    assert record.claimed is True
    assert record.last_updated != "2024-03-01T10:00:00Z"


def test_save_profile_claims_unowned_pin(client, store):
    body = {"uid": "u2", "firstName": "Cy", "lastName": "Do", "email": "cy@example.com"}

    assert client.put("/profiles/A2", json=body).status_code == 200
    assert store.get("A2").uid == "u2"


def test_save_profile_rejects_other_owner(client, store):
    body = {"uid": "intruder", "firstName": "X", "lastName": "Y", "email": "x@example.com"}

    assert client.put("/profiles/A1", json=body).status_code == 409
    assert store.get("A1").first_name == "Ann"


def test_save_profile_requires_name_and_email(client):
    body = {"uid": "u1", "firstName": " ", "lastName": "Lee"}

    assert client.put("/profiles/A1", json=body).status_code == 422
