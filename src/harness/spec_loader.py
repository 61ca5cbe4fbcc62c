"""Assembly of an OpenAPI document from a root file and fragment directories.

Layout next to the root file::

    openapi.yaml
    paths/<name>.yaml              -> paths["/<name>"]
    components/schemas/<Name>.yaml -> components.schemas["<Name>"]

Fragments are merged in sorted filename order and override entries of the
same name declared inline in the root file.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from src.shared.errors import SpecLoadError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yaml", ".yml")


def load_document(spec_path: Path | str) -> dict[str, Any]:
    """Load the root document at *spec_path* and merge its fragment files.

    Raises:
        SpecLoadError: The root file is missing, is not a YAML mapping, or a
            fragment cannot be parsed.
    """
    spec_path = Path(spec_path)
    if not spec_path.is_file():
        raise SpecLoadError(f"OpenAPI specification file not found at: {spec_path}")

    logger.info("Loading OpenAPI spec from %s", spec_path)
    document = _load_yaml(spec_path)
    if not isinstance(document, dict):
        raise SpecLoadError(f"Failed to parse OpenAPI specification: {spec_path}")

    if not isinstance(document.get("paths"), dict):
        logger.warning("No paths found in %s, initializing empty paths object", spec_path)
        document["paths"] = {}
    if not isinstance(document.get("components"), dict):
        document["components"] = {}

    base_dir = spec_path.parent

    for name, fragment in _load_fragments(base_dir / "paths"):
        path_name = f"/{name}"
        logger.debug("Adding path %s", path_name)
        document["paths"][path_name] = fragment

    schemas = _load_fragments(base_dir / "components" / "schemas")
    if schemas:
        component_schemas = document["components"].setdefault("schemas", {})
        for name, fragment in schemas:
            logger.debug("Adding schema %s", name)
            component_schemas[name] = fragment

    logger.info(
        "Assembled OpenAPI spec: %d paths, %d schemas",
        len(document["paths"]),
        len(document["components"].get("schemas") or {}),
    )
    return document


# ======================================================================
# Internal helpers
# ======================================================================


def _load_fragments(directory: Path) -> list[tuple[str, Any]]:
    """Return ``(stem, content)`` for every non-empty YAML file in *directory*."""
    if not directory.is_dir():
        return []

    fragments: list[tuple[str, Any]] = []
    for file_path in sorted(directory.iterdir()):
        if file_path.suffix not in _YAML_SUFFIXES or not file_path.is_file():
            continue
        content = _load_yaml(file_path)
        if content is None:
            logger.warning("Skipping empty fragment %s", file_path)
            continue
        fragments.append((file_path.stem, content))
    return fragments


def _load_yaml(file_path: Path) -> Any:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise SpecLoadError(f"Error parsing {file_path}: {exc}") from exc
