import datetime
import io

import pandas as pd
import pytest

from domain.errors import AuthError
from domain.models import User
from services import auth_service, export_service, users_service
from services.upload_service import ingest_participants
from utils.upload_utils import coerce_schema, normalize_upload_df, validate_rows


def test_participants_csv_headers_and_flags():
    u = User(id="1", name="Dewi", email="d@example.com", role="participant", participant_type="offline",
             is_checked_in=True, event_checkin_time=datetime.datetime(2025, 11, 20, 9, 5, 3),
             event_checkin_method="qr")
    df = pd.read_csv(io.BytesIO(export_service.participants_csv([u])), dtype=str, keep_default_na=False)
    assert list(df.columns) == export_service.PARTICIPANT_HEADERS
    row = df.iloc[0]
    assert row["Is Checked In"] == "Yes"
    assert row["Is Eligible To Draw"] == "No"
    assert row["Event Checkin Time"] == "20/11/2025 09:05:03"
    assert row["Company"] == ""


def test_export_filename():
    at = datetime.datetime(2025, 11, 20, 9, 30, 0)
    assert export_service.export_filename("participants", at) == "participants_2025-11-20T09-30-00.csv"


def test_normalize_and_validate():
    raw = pd.DataFrame({
        "Nama": ["Dewi", "", "Budi", "Sari", "Dewi 2"],
        "E-mail": ["Dewi@Example.com", "x@example.com", "bad-email", "sari@example.com", "dewi@example.com"],
        "Tipe": ["Luring", "online", "offline", "hybrid", "online"],
        "Perusahaan": ["Astra Infra", None, None, None, ""],
    })
    df = normalize_upload_df(raw)
    assert {"name", "email", "participant_type", "company"} <= set(df.columns)
    assert df.loc[0, "participant_type"] == "offline"

    valid, errors = validate_rows(df)
    assert list(valid["email"]) == ["dewi@example.com"]
    assert len(errors) == 4

    out = coerce_schema(valid)
    assert list(out.columns) == ["name", "email", "participant_type", "company", "division"]
    assert pd.isna(out.iloc[0]["division"])


def test_missing_required_columns():
    valid, errors = validate_rows(normalize_upload_df(pd.DataFrame({"name": ["A"]})))
    assert valid.empty
    assert "email" in errors[0] and "participant_type" in errors[0]


def test_ingest_csv_skips_existing(engine, make_participant):
    existing = make_participant()
    csv = (
        "name,email,type,company\n"
        f"Known,{existing.email.upper()},offline,\n"
        "New One,new1@example.com,online,United Tractors\n"
        "New Two,new2@example.com,offline,\n"
    ).encode()
    summary = ingest_participants(engine, io.BytesIO(csv), "participants.csv")
    assert summary["inserted"] == 2
    assert [c.email for c in summary["credentials"]] == ["new1@example.com", "new2@example.com"]
    assert summary["skipped_existing"] == 1
    assert summary["errors"] == []

    new1 = users_service.get_user_by_email(engine, "new1@example.com")
    assert new1.role == "participant"
    assert new1.participant_type == "online"
    assert new1.company == "United Tractors"
    assert users_service.get_user_by_email(engine, "new2@example.com").company is None


def test_ingest_excel(engine, tmp_path):
    path = tmp_path / "people.xlsx"
    pd.DataFrame({"name": ["Xl Person"], "email": ["xl@example.com"], "participant_type": ["daring"]}).to_excel(
        path, index=False
    )
    with open(path, "rb") as fh:
        summary = ingest_participants(engine, fh, "people.xlsx")
    assert summary["inserted"] == 1
    assert users_service.get_user_by_email(engine, "xl@example.com").participant_type == "online"


def test_imported_participants_get_their_own_password(engine):
    csv = (
        "name,email,type\n"
        "Ana,ana@example.com,offline\n"
        "Ben,ben@example.com,online\n"
    ).encode()
    summary = ingest_participants(engine, io.BytesIO(csv), "participants.csv")
    creds = {c.email: c.password for c in summary["credentials"]}

    ana = auth_service.login(engine, "ana@example.com", creds["ana@example.com"])
    assert ana.name == "Ana"
    with pytest.raises(AuthError):
        auth_service.login(engine, "ben@example.com", creds["ana@example.com"])

    sheet = pd.read_csv(io.BytesIO(export_service.credentials_csv(summary["credentials"])), dtype=str)
    assert list(sheet.columns) == export_service.CREDENTIAL_HEADERS
    assert sheet["Email"].tolist() == ["ana@example.com", "ben@example.com"]


@pytest.mark.parametrize("payload, filename, match", [
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64, "participants.xls", "unsupported file type"),
    (b"definitely not a zip archive", "participants.xlsx", "not a valid .xlsx"),
    (b"", "participants.csv", "Could not read"),
])
def test_unreadable_upload_is_reported_not_raised(engine, payload, filename, match):
    summary = ingest_participants(engine, io.BytesIO(payload), filename)
    assert summary["inserted"] == 0
    assert summary["credentials"] == []
    assert len(summary["errors"]) == 1
    assert match in summary["errors"][0]
    assert summary["errors"][0].startswith("Could not read the file")
