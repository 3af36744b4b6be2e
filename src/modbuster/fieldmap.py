"""FieldMap: declarative register layout (name -> address -> kind) loaded from JSON."""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

from .errors import UnknownFieldError
from .types import FieldDef, ValueKind

logger = logging.getLogger(__name__)

_PROFILE_RESOURCE: dict[str, str] = {
    "default": "modbuster.data.default_fields",
}


def _parse_entry(raw: dict[str, Any]) -> FieldDef:
    """Build FieldDef from a JSON entry (name, address, kind, meta)."""
    name = raw["name"]
    kind_str = raw["kind"]
    try:
        kind = ValueKind(kind_str)
    except ValueError:
        raise ValueError(f"Unknown kind {kind_str!r} for field {name!r}")
    address = int(raw["address"])
    meta = raw.get("meta")
    if meta is not None and not isinstance(meta, dict):
        meta = None  # tolerate malformed JSON
    return FieldDef(name=name, address=address, kind=kind, meta=meta)


def _entries_from_json(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and "entries" in data:
        return data["entries"]
    return []


class FieldMap:
    """
    Ordered map of field names to FieldDef. Loaded from packaged JSON, a user
    JSON file, or an override list of entry dicts.
    """

    def __init__(
        self,
        profile: str = "default",
        map_override: list[dict[str, Any]] | None = None,
        path: Path | None = None,
    ) -> None:
        self._profile = profile.lower()
        self._by_name: dict[str, FieldDef] = {}

        if map_override is not None:
            self._add_all(map_override)
            logger.debug("FieldMap loaded from override: %d fields", len(self._by_name))
            return

        if path is not None:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._profile = str(path)
            self._add_all(_entries_from_json(data))
            logger.debug("FieldMap loaded from %s: %d fields", path, len(self._by_name))
            return

        resource_name = _PROFILE_RESOURCE.get(self._profile)
        if not resource_name:
            raise ValueError(f"Unknown profile: {profile!r}")

        pkg, name = resource_name.rsplit(".", 1)
        json_name = f"{name}.json"
        try:
            with resources.files(pkg).joinpath(json_name).open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Field map resource not found: {pkg}/{json_name}") from None

        self._add_all(_entries_from_json(data))
        logger.debug("FieldMap loaded for profile %s: %d fields", self._profile, len(self._by_name))

    def _add_all(self, entries: list[Any]) -> None:
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            field_def = _parse_entry(entry)
            if field_def.name in self._by_name:
                raise ValueError(f"Duplicate field in map: {field_def.name}")
            self._by_name[field_def.name] = field_def

    def lookup(self, name: str) -> FieldDef:
        """Return FieldDef for name; raise UnknownFieldError if not in map."""
        if name not in self._by_name:
            raise UnknownFieldError(name)
        return self._by_name[name]

    @property
    def fields(self) -> tuple[FieldDef, ...]:
        return tuple(self._by_name.values())

    def span(self) -> tuple[int, int]:
        """Smallest (start, count) window covering both words of every field."""
        if not self._by_name:
            raise ValueError("Field map is empty")
        start = min(f.address for f in self._by_name.values())
        end = max(f.address for f in self._by_name.values()) + 2
        return start, end - start

    def __iter__(self) -> Iterator[FieldDef]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    @property
    def profile(self) -> str:
        return self._profile


def get_default_fieldmap(profile: str = "default") -> FieldMap:
    """Load and return the packaged FieldMap for the given profile."""
    return FieldMap(profile=profile)
