from __future__ import annotations

import base64
import binascii
import re
from typing import Optional, Tuple

from django.conf import settings


_DATA_URI_RE = re.compile(r'^data:([\w.+-]+/[\w.+-]+)(?:;[\w-]+=[^;,]*)*;base64,(.*)$', re.S)

SUPPORTED_PROOF_PREFIXES = ('image/', 'application/pdf')


class DataUriError(ValueError):
    pass


def mime_type_of(data_uri: str) -> Optional[str]:
    m = _DATA_URI_RE.match((data_uri or '').strip())
    return m.group(1).lower() if m else None


def is_supported_proof_type(mime_type: Optional[str]) -> bool:
    mt = (mime_type or '').lower()
    return bool(mt) and any(mt.startswith(p) for p in SUPPORTED_PROOF_PREFIXES)


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    m = _DATA_URI_RE.match((data_uri or '').strip())
    if not m:
        raise DataUriError('Not a base64 data URI')
    try:
        payload = base64.b64decode(m.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DataUriError(f'Invalid base64 payload: {e}') from e
    return m.group(1).lower(), payload


def max_proof_bytes() -> int:
    try:
        return int(getattr(settings, 'PAYMENT_PROOF_MAX_BYTES', 5 * 1024 * 1024) or 0)
    except (TypeError, ValueError):
        return 5 * 1024 * 1024


def payload_size(data_uri: str) -> Optional[int]:
    """Decoded size of a base64 data URI without decoding it; None when it is not one."""
    m = _DATA_URI_RE.match((data_uri or '').strip())
    if not m:
        return None
    b64 = re.sub(r'\s+', '', m.group(2))
    padding = len(b64) - len(b64.rstrip('='))
    return len(b64) * 3 // 4 - padding


def check_proof_size(data_uri: str) -> None:
    limit = max_proof_bytes()
    size = payload_size(data_uri)
    if size is None:
        size = len(data_uri or '')
    if limit and size > limit:
        raise DataUriError(f'File too large ({size} bytes, limit {limit})')


def encode_bytes(data: bytes, mime_type: str) -> str:
    mt = (mime_type or 'application/octet-stream').split(';', 1)[0].strip().lower()
    return f"data:{mt};base64,{base64.b64encode(data).decode('ascii')}"


def encode_upload(upload) -> str:
    """Read an uploaded file (Django UploadedFile) into a self-describing data URI."""
    if upload is None:
        raise DataUriError('No file uploaded')
    limit = max_proof_bytes()
    size = int(getattr(upload, 'size', 0) or 0)
    if limit and size > limit:
        raise DataUriError(f'File too large ({size} bytes, limit {limit})')
    try:
        chunks = []
        for chunk in upload.chunks():
            chunks.append(chunk)
        data = b''.join(chunks)
    except Exception as e:
        raise DataUriError(f'Could not read upload: {e.__class__.__name__}') from e
    if not data:
        raise DataUriError('Uploaded file is empty')
    if limit and len(data) > limit:
        raise DataUriError(f'File too large ({len(data)} bytes, limit {limit})')
    return encode_bytes(data, getattr(upload, 'content_type', '') or 'application/octet-stream')
