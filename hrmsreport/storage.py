from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .types import AppraisalDocument


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))


def load_document(path: Path) -> AppraisalDocument:
    payload = read_json(path)
    return AppraisalDocument.model_validate(payload)


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)
