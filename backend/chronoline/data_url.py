"""Helpers for ``data:<mime>;base64,<payload>`` image encoding."""

import base64
import binascii
import re

DEFAULT_MIME_TYPE = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)
_MIME_PREFIX_RE = re.compile(r"^data:([^;]+);base64,")


def build_data_url(payload: bytes, mime_type: str | None) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{encoded}"


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """
    Split a data URL into its mime type and decoded bytes.

    :param data_url: A ``data:<mime>;base64,<payload>`` string
    :type data_url: str
    :return: Tuple of (mime type, raw bytes)
    :rtype: tuple[str, bytes]
    :raises ValueError: If the string is not a base64 data URL
    """
    match = _DATA_URL_RE.match(data_url or "")
    if not match:
        raise ValueError("Invalid base64 data format")
    try:
        payload = base64.b64decode(match.group(2), validate=False)
    except binascii.Error as exc:
        raise ValueError("Invalid base64 data format") from exc
    return match.group(1), payload


def mime_type_of(data_url: str) -> str:
    match = _MIME_PREFIX_RE.match(data_url or "")
    return match.group(1) if match else DEFAULT_MIME_TYPE


def approximate_size(data_url: str) -> int:
    # Base64 inflates by 4/3.
    return round(len(data_url) * 3 / 4)
