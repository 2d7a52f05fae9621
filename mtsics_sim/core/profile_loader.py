"""Instrument profile loading and validation for YAML profile files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from mtsics_sim.core.errors import ProfileLoadError, ProfileValidationError
from mtsics_sim.core.model import InstrumentConfiguration, InstrumentProfile

PROFILE_FILENAMES = ("profile.yaml", "profile.yml")
# Scalars with these tags stay text, so "012345" or "on" are reported verbatim.
_TEXT_TAGS = frozenset({"tag:yaml.org,2002:bool", "tag:yaml.org,2002:int", "tag:yaml.org,2002:float"})
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag not in _TEXT_TAGS
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfile:
    profile: InstrumentProfile
    source: str


def _load_schema_validator() -> Any:
    schema_text = resources.files("mtsics_sim.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_profile_dir() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "mtsics-sim"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _as_text(value: Any) -> str:
    return str(value).strip()


def build_profile(doc: dict[str, Any], source: Path | Traversable | str) -> InstrumentProfile:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    configuration = doc["configuration"]
    return InstrumentProfile(
        make=doc["make"].strip(),
        model=_as_text(doc["model"]),
        type=_as_text(doc["type"]),
        serial_number=_as_text(doc["serial_number"]),
        firmware_rev=_as_text(doc["firmware_rev"]),
        configuration=InstrumentConfiguration(
            weigh_mode=_as_text(configuration["weigh_mode"]),
            environmental_stability=_as_text(configuration["environmental_stability"]),
            auto_zero_mode=_as_text(configuration["auto_zero_mode"]),
            standby_timeout=_as_text(configuration["standby_timeout"]),
        ),
    )


def _packaged_profile_path() -> Traversable:
    return resources.files("mtsics_sim.profiles").joinpath("default.yaml")


def _user_profile_path() -> Path | None:
    directory = user_profile_dir()
    for name in PROFILE_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_profile(path: Path | str | None = None) -> LoadedProfile:
    """Resolve the instrument profile.

    An explicit ``path`` wins, then a user profile under
    ``$XDG_CONFIG_HOME/mtsics-sim``, then the packaged default.
    """
    source: Path | Traversable
    if path is not None:
        source = Path(path)
        if not source.is_file():
            raise ProfileLoadError(f"Profile file {source} does not exist")
    else:
        user_path = _user_profile_path()
        if user_path is not None:
            LOGGER.info("Using user profile %s", user_path)
            source = user_path
        else:
            source = _packaged_profile_path()

    doc = _read_yaml(source)
    return LoadedProfile(profile=build_profile(doc, source), source=str(source))
