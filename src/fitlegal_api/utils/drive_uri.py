import re

# Evaluated in order; the last pattern is a broad fallback for bare ids.
_FILE_ID_PATTERNS = (
    re.compile(r"/files/([a-zA-Z0-9_-]+)"),
    re.compile(r"/folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/([a-zA-Z0-9_-]{25,})"),
)


def extract_file_id(resource_uri: str | None) -> str | None:
    """Pull a Drive file or folder id out of a resource URI.

    Accepts URIs like:
        https://www.googleapis.com/drive/v3/files/ABC123?alt=json
        https://drive.google.com/drive/folders/1a2B3c
        https://drive.google.com/open?id=1a2B3c

    The first matching pattern wins, even if a later one would match a
    longer id.
    """
    if not resource_uri:
        return None

    for pattern in _FILE_ID_PATTERNS:
        m = pattern.search(resource_uri)
        if m:
            return m.group(1)

    return None
