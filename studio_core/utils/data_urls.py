"""
Helpers for inline ``data:`` URLs
"""

import base64


def decode_data_url(data_url: str):
    """Split a base64 data URL into (bytes, content type)"""
    header, _, payload = data_url.partition(",")
    content_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    if ";base64" not in header:
        raise ValueError("Only base64 data URLs are supported")
    return base64.b64decode(payload), content_type
