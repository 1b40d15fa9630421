import base64
import json
import uuid
from urllib.parse import quote

import pytest

from utils.qr_utils import build_participant_payload, encode_payload, parse_scanned_text, qr_png_bytes

PID = str(uuid.UUID(int=42))


def test_payload_shape():
    assert build_participant_payload(PID, "Dewi") == {"participantId": PID, "name": "Dewi"}
    assert json.loads(encode_payload(build_participant_payload(PID, "Dewi")))["participantId"] == PID


def test_png_bytes():
    png = qr_png_bytes(build_participant_payload(PID, "Dewi"))
    assert png[:8] == b"\x89PNG\r\n\x1a\n"


@pytest.mark.parametrize("text", [
    json.dumps({"participantId": PID, "name": "Dewi"}),
    f'  {json.dumps({"data": {"participant_id": PID, "name": "Dewi"}})}\n',
    base64.b64encode(json.dumps({"participantId": PID, "name": "Dewi"}).encode()).decode(),
    base64.urlsafe_b64encode(json.dumps({"pid": PID, "name": "D"}).encode()).decode().rstrip("="),
    f"https://forum.example.com/checkin?participantId={PID}",
    "https://forum.example.com/q?data=" + quote(json.dumps({"participantId": PID, "name": "Dewi"})),
    PID,
])
def test_parse_accepts_participant_codes(text):
    assert parse_scanned_text(text) == PID


@pytest.mark.parametrize("text", [
    "",
    "hello world",
    json.dumps({"participantId": PID}),
    json.dumps({"name": "No id"}),
    "https://forum.example.com/other",
    "not-a-uuid-1234",
])
def test_parse_rejects_other_codes(text):
    assert parse_scanned_text(text) is None
