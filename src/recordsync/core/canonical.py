"""
Canonical form and content hashing for serialized records.

The canonical form of an export is what gets compared when deciding whether a
live record has drifted from its file:
- Empty ``_meta.options`` and empty ``translations`` are omitted
- Keys configured as environment-specific are removed at every nesting level
- Unicode is normalized (NFC)

The canonical JSON string gives a stable, platform-independent content hash.
"""

import copy
import hashlib
import json
import unicodedata
from typing import Any, Dict, Iterable


def canonicalize(obj: Any) -> str:
    """
    Canonicalize a Python object to a stable JSON string.

    Keys are sorted recursively, unicode is NFC-normalized and there is no
    insignificant whitespace.
    """
    return json.dumps(
        _normalize_for_canonical(obj),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_canonical_default,
    )


def _normalize_for_canonical(obj: Any) -> Any:
    if obj is None:
        return None

    if isinstance(obj, str):
        return unicodedata.normalize("NFC", obj)

    if isinstance(obj, bool):
        # Handle bool before int (bool is subclass of int)
        return obj

    if isinstance(obj, (int, float)):
        return obj

    if isinstance(obj, dict):
        return {
            _normalize_for_canonical(k): _normalize_for_canonical(v)
            for k, v in obj.items()
        }

    if isinstance(obj, (list, tuple)):
        return [_normalize_for_canonical(item) for item in obj]

    return unicodedata.normalize("NFC", str(obj))


def _canonical_default(obj: Any) -> Any:
    if hasattr(obj, "isoformat"):
        return obj.isoformat()

    if hasattr(obj, "to_dict"):
        return obj.to_dict()

    return str(obj)


def strip_keys(data: Any, keys: Iterable[str]) -> Any:
    """
    Return a copy of ``data`` with every key in ``keys`` removed from every
    mapping at every nesting level, including mappings inside lists.
    """
    keys = set(keys)
    if isinstance(data, dict):
        return {
            k: strip_keys(v, keys)
            for k, v in data.items()
            if k not in keys
        }
    if isinstance(data, list):
        return [strip_keys(item, keys) for item in data]
    return data


def canonical_export(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply the canonical-form rule to an export mapping.

    ``_meta.options`` and ``translations`` are dropped when empty so that a
    record without overrides or translations serializes the same way whether
    or not those keys were ever present.
    """
    result = copy.deepcopy(data)

    meta = result.get("_meta")
    if isinstance(meta, dict) and "options" in meta and not meta["options"]:
        del meta["options"]

    if "translations" in result and not result["translations"]:
        del result["translations"]

    return result


def compute_content_hash(data: Dict[str, Any]) -> str:
    """
    Compute the SHA256 hash of an export mapping's canonical form.

    Args:
        data: Export mapping (as produced by SerializedRecord.to_dict())

    Returns:
        Hex-encoded SHA256 hash string
    """
    canonical_str = canonicalize(canonical_export(data))
    return hashlib.sha256(canonical_str.encode("utf-8")).hexdigest()
