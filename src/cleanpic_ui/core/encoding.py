"""
Data URI Encoding
=================

Images travel between the client, the proxy, and the backend as base64
``data:`` URIs, the same form a browser ``FileReader.readAsDataURL`` produces.

Functions
---------
to_data_uri
    Encode raw bytes and a MIME type as a data URI
parse_data_uri
    Decode a data URI into ``(bytes, mime_type)``
is_data_uri
    Cheap prefix check used by the response parser
"""

import base64
import binascii
import re

from .errors import InvalidInput

_DATA_URI = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[\w.+-]+=[\w.+-]+)*)"
    r"(?P<b64>;base64)?,(?P<payload>.*)$",
    re.DOTALL,
)


def is_data_uri(value) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def to_data_uri(data: bytes, mime_type: str) -> str:
    """
    Encode bytes as a base64 data URI.

    Parameters
    ----------
    data : bytes
        Raw payload
    mime_type : str
        MIME type, e.g. ``"image/png"``

    Returns
    -------
    str
        ``data:<mime>;base64,<payload>``

    Examples
    --------
    >>> to_data_uri(b"abc", "image/png")
    'data:image/png;base64,YWJj'
    """
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> tuple[bytes, str]:
    """
    Decode a data URI.

    Parameters
    ----------
    uri : str
        A ``data:`` URI; only base64 payloads are accepted

    Returns
    -------
    tuple of (bytes, str)
        Decoded payload and its MIME type

    Raises
    ------
    InvalidInput
        If the string is not a base64 data URI or the payload is empty
    """
    if not is_data_uri(uri):
        raise InvalidInput("Expected a data URI")
    m = _DATA_URI.match(uri)
    if m is None or not m.group("b64"):
        raise InvalidInput("Malformed data URI", "only base64 payloads are supported")
    try:
        data = base64.b64decode(m.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput("Malformed data URI", str(e)) from e
    if not data:
        raise InvalidInput("Empty data URI payload")
    return data, m.group("mime") or "application/octet-stream"
