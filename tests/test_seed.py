import pandas as pd

import seed
from services import auth_service, users_service


def test_import_participants_writes_credentials_sheet(engine, tmp_path, monkeypatch):
    monkeypatch.setattr(seed, "get_engine", lambda: engine)
    source = tmp_path / "people.csv"
    source.write_text("name,email,type\nRina,rina@example.com,offline\nTomi,tomi@example.com,online\n")
    out = tmp_path / "creds.csv"

    assert seed.main(["import-participants", str(source), "--credentials", str(out)]) == 0

    sheet = pd.read_csv(out, dtype=str)
    assert sheet["Email"].tolist() == ["rina@example.com", "tomi@example.com"]
    rina = sheet.iloc[0]
    assert auth_service.login(engine, rina["Email"], rina["Password"]).name == "Rina"
    assert users_service.get_user_by_email(engine, "tomi@example.com").participant_type == "online"


def test_import_of_unknown_format_writes_nothing(engine, tmp_path, monkeypatch):
    monkeypatch.setattr(seed, "get_engine", lambda: engine)
    source = tmp_path / "people.xls"
    source.write_bytes(b"\xd0\xcf\x11\xe0")
    out = tmp_path / "creds.csv"

    assert seed.main(["import-participants", str(source), "--credentials", str(out)]) == 0
    assert not out.exists()
