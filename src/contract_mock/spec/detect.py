"""Load spec files from disk and detect their format."""

from pathlib import Path
from typing import Any

import yaml

from contract_mock.spec.registry import SpecRegistry, spec_registry

SDL_SUFFIXES = (".graphql", ".gql", ".graphqls")


def read_document(file_path: Path) -> Any:
    """Read a spec file.

    GraphQL SDL files stay text. Everything else goes through YAML (which
    also reads JSON); text that is not a YAML mapping is returned as is.
    """
    text = Path(file_path).read_text(encoding="utf-8")
    if Path(file_path).suffix.lower() in SDL_SUFFIXES:
        return text

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        return text
    if isinstance(data, dict):
        return data
    return text


def detect_format(file_path: Path, registry: SpecRegistry = spec_registry) -> str | None:
    """Return 'openapi', 'graphql' or 'asyncapi', or None if unrecognized."""
    return registry.detect_type(read_document(file_path))
