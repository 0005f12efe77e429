import hashlib
import importlib.metadata
import json
import re
from typing import Any, Optional

_USER_AGENT_CACHE: Optional[str] = None

# Leading decimal number, as read by a lenient float parser
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `crosupdates/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("crosupdates")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"crosupdates/{app_version}"

    return _USER_AGENT_CACHE


def compact_json(data: Any) -> str:
    """Serialize `data` to JSON without whitespace, keeping key order."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def parse_float_version(value: Any) -> float:
    """
    Parse the leading numeric part of a version string.

    "115.0.5790.130" parses as 115.0, "15474.70.0" as 15474.7. Missing or
    unparsable values parse as 0.

    Parameters:
        value (Any): Version value from an upstream record.

    Returns:
        float: The parsed number, or 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT_RE.match(str(value))
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def parse_int_key(value: Any) -> float:
    """
    Parse a whole version key such as a push-recovery milestone.

    Returns 0 when the key is not numeric.
    """
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
