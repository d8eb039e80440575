"""
Compressed payload encoding used by draw.io.

draw.io stores a compressed page as base64(deflate_raw(encodeURIComponent(xml))).
"""

import base64
import zlib
from urllib.parse import quote, unquote

# Characters encodeURIComponent leaves alone besides alphanumerics and "_.-".
_URI_COMPONENT_SAFE = "~()*!'"


def compress_xml(xml: str) -> str:
    """Encode a graph model the way draw.io does for compressed pages."""
    quoted = quote(xml, safe=_URI_COMPONENT_SAFE).encode("utf-8")
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    deflated = compressor.compress(quoted) + compressor.flush()
    return base64.b64encode(deflated).decode("ascii")


def decompress_xml(data: str) -> str:
    """Decode draw.io compressed cell data.

    Data that is not base64/deflate encoded is returned as-is.
    """
    try:
        decoded = base64.b64decode(unquote(data.strip()), validate=True)
        # Inflate (decompress)
        inflated = zlib.decompress(decoded, -15)
        return unquote(inflated.decode("utf-8"))
    except (ValueError, zlib.error):
        return data


def create_diagrams_net_url(xml: str) -> str:
    """Build an app.diagrams.net link that opens the document directly."""
    return f"https://app.diagrams.net/#R{quote(xml, safe=_URI_COMPONENT_SAFE)}"
