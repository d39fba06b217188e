"""
Shared I/O and logging helpers for the articlevec command line tools.
"""
from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

# Tried in order when reading article dumps of unknown provenance
FALLBACK_ENCODINGS = ("utf-8", "utf-8-sig", "cp1252", "latin-1")

log = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    )


# ------------------------------
# I/O utils
# ------------------------------

def sha256_of_obj(obj: Any) -> str:
    """Checksum of a JSON-serializable object (sorted keys, so it is stable)."""
    blob = json.dumps(obj, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()


def read_text_fallback(path: Path) -> Optional[str]:
    """Decode a file with the first encoding that works, or None."""
    for enc in FALLBACK_ENCODINGS:
        try:
            return path.read_text(encoding=enc)
        except UnicodeDecodeError:
            continue
    log.warning("skipping %s: could not decode with %s", path, "/".join(FALLBACK_ENCODINGS))
    return None


def iter_jsonl_text(text: str) -> Iterable[dict]:
    for line in text.splitlines():
        if not line.strip():
            continue
        yield json.loads(line)


def write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
