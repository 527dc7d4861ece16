from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from .models import TerrainMeshData


PathLike = Union[str, Path]


def load_mesh_json(path: PathLike) -> TerrainMeshData:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return TerrainMeshData.from_dict(data)


def save_mesh_json(mesh: TerrainMeshData, path: PathLike) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mesh.to_dict()), encoding="utf-8")


def validate_mesh_payload(payload: Dict[str, Any]) -> List[str]:
    """Validate a mesh payload against the expected structure.

    Returns a list of error messages (empty = valid).

    This is a lightweight structural validator — not a full JSON Schema
    check.  Use the ``schemas/mesh.schema.json`` file for formal
    validation with ``jsonschema``.
    """
    errors: List[str] = []

    for key in ("vertices", "normals", "uvs", "indices", "index_width"):
        if key not in payload:
            errors.append(f"Missing top-level key: {key}")
    if errors:
        return errors

    n = len(payload["vertices"])
    for key, width in (("vertices", 3), ("normals", 3), ("uvs", 2)):
        rows = payload[key]
        if len(rows) != n:
            errors.append(f"'{key}' has {len(rows)} rows, expected {n}")
        if any(len(row) != width for row in rows):
            errors.append(f"'{key}' rows must have {width} components")

    indices = payload["indices"]
    if len(indices) % 3 != 0:
        errors.append(f"index count {len(indices)} is not a multiple of 3")
    if any(i < 0 or i >= n for i in indices):
        errors.append("index out of range")
    if payload["index_width"] not in (16, 32):
        errors.append(f"index_width must be 16 or 32, got {payload['index_width']}")
    return errors
