# utils/qr_utils.py
from __future__ import annotations

import base64
import binascii
import io
import json
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse, parse_qs, unquote

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from utils.json_utils import to_jsonable

UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

# Keys that may carry the participant id (case-insensitive)
ID_KEYS_LOWER = {"participantid", "participant_id", "pid", "id"}

QR_IMAGE_OPTS = {"version": None, "error_correction": ERROR_CORRECT_M, "box_size": 10, "border": 4}


# ──────────────────────────────────────────────────────────────
# Building
# ──────────────────────────────────────────────────────────────
def build_participant_payload(participant_id: str, name: str) -> Dict[str, Any]:
    """What the participant's QR carries; staff scanners read it back."""
    return {"participantId": str(participant_id), "name": name}


def encode_payload(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, default=to_jsonable, separators=(",", ":"))


def qr_png_bytes(payload: Dict[str, Any] | str) -> bytes:
    data = payload if isinstance(payload, str) else encode_payload(payload)
    qr = qrcode.QRCode(**QR_IMAGE_OPTS)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image()
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ──────────────────────────────────────────────────────────────
# Scanning
# ──────────────────────────────────────────────────────────────
def _b64_try(s: str) -> Optional[str]:
    """Base64/URL-safe base64 decode; return None on failure."""
    s = (s or "").strip()
    if not s:
        return None
    s2 = s.replace("-", "+").replace("_", "/")
    pad = "=" * ((4 - len(s2) % 4) % 4)
    try:
        return base64.b64decode(s2 + pad, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


def _json_try(s: Optional[str]) -> Any:
    if not s:
        return None
    try:
        return json.loads(s)
    except ValueError:
        return None


def _id_from_obj(obj: Any) -> Optional[str]:
    """A participant QR must carry both an id and a name."""
    if not isinstance(obj, dict):
        return None
    if isinstance(obj.get("data"), dict):
        obj = obj["data"]
    pid = next((v for k, v in obj.items() if str(k).strip().lower() in ID_KEYS_LOWER and v), None)
    if not pid or not obj.get("name"):
        return None
    return str(pid).strip()


def _id_from_url(url: str) -> Optional[str]:
    q = parse_qs(urlparse(url).query or "")
    for k, vals in q.items():
        if k.lower() in ID_KEYS_LOWER and vals and UUID_RE.match(vals[0].strip()):
            return vals[0].strip()
    for k in ("data", "payload", "qr", "p"):
        if k in q and q[k]:
            raw = unquote(q[k][0])
            obj = _json_try(raw)
            if obj is None:
                obj = _json_try(_b64_try(raw))
            pid = _id_from_obj(obj)
            if pid:
                return pid
    return None


def parse_scanned_text(text: str) -> Optional[str]:
    """
    Accept raw QR text from a handheld scanner and return the participant id.
    - JSON {"participantId": ..., "name": ...}
    - base64-encoded JSON
    - URL with ?data=/payload/qr/p (plain or base64url JSON) or ?participantId=
    - a bare UUID
    """
    if not text:
        return None
    s = text.strip()

    if s.startswith("{") and s.endswith("}"):
        return _id_from_obj(_json_try(s))

    if s.startswith(("http://", "https://")):
        return _id_from_url(s)

    if UUID_RE.match(s):
        return s

    return _id_from_obj(_json_try(_b64_try(s)))
