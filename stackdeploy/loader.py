"""Read resource declarations from JSON or TOML files."""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stackdeploy.errors import DeclarationError
from stackdeploy.models import ResourceSpec

logger = logging.getLogger(__name__)


def read_document(path: Path) -> dict[str, Any]:
    """Parse a declaration file. A bare JSON list is treated as ``{"resources": [...]}``."""
    path = Path(path)
    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                data: Any = tomllib.load(f)
        elif path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            raise DeclarationError(f"Unsupported declaration format '{path.suffix}' (use .json or .toml)")
    except OSError as e:
        raise DeclarationError(f"Cannot read {path}: {e}") from e
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise DeclarationError(f"Cannot parse {path}: {e}") from e

    if isinstance(data, list):
        data = {"resources": data}
    if not isinstance(data, dict):
        raise DeclarationError(f"{path}: expected an object or a list of resources")
    return data


def parse_resources(entries: Any, source: str = "<input>") -> list[ResourceSpec]:
    if not isinstance(entries, list):
        raise DeclarationError(f"{source}: 'resources' must be a list")

    specs = []
    for i, entry in enumerate(entries):
        try:
            specs.append(ResourceSpec.model_validate(entry))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'entry'}: {err['msg']}" for err in e.errors()
            )
            raise DeclarationError(f"{source}: resource #{i + 1} is invalid ({problems})") from e
    return specs


def load_resources(path: Path) -> list[ResourceSpec]:
    """Load the ``resources`` list of a declaration file, in declaration order."""
    document = read_document(path)
    specs = parse_resources(document.get("resources", []), source=str(path))
    logger.info(f"Loaded {len(specs)} resources from {path}")
    return specs
