from __future__ import annotations

import json
from decimal import Decimal
from hashlib import sha256
from typing import Any


class CanonicalError(ValueError):
    pass


def to_canonical_obj(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): to_canonical_obj(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_canonical_obj(v) for v in value]
    if isinstance(value, Decimal):
        # 10.5 and 10.50 are the same price
        return format(value.normalize(), "f")
    if isinstance(value, float):
        raise CanonicalError("float prices are ambiguous; pass Decimal")
    if value is None or isinstance(value, (str, int)):
        return value
    raise CanonicalError(f"cannot fingerprint {type(value).__name__} values")


def canonical_json(value: Any) -> bytes:
    return json.dumps(to_canonical_obj(value), sort_keys=True, separators=(",", ":")).encode("utf-8")


def sha256_hex(value: Any) -> str:
    return sha256(canonical_json(value)).hexdigest()
