import hashlib
import json


def payload_fingerprint(payload: dict) -> str:
    """SHA-256 of the payload as canonical JSON (sorted keys, no whitespace)."""
    # default=str covers datetimes and URLs left in model_dump() output.
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
