"""
Administrative regions: the lookup collaborators (wilayah.id API, local JSON
dataset) and the cascade that keeps province -> regency -> district ->
village selections consistent.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from collections.abc import Callable

import httpx

from .form_data_builder import StudentData

logger = logging.getLogger(__name__)

LEVELS: tuple[str, ...] = ('province', 'regency', 'district', 'village')
# wilayah.id path segment for each level
API_LEVEL_PATHS: dict[str, str] = {
    'province': 'provinces',
    'regency': 'regencies',
    'district': 'districts',
    'village': 'villages',
}
DEFAULT_API_BASE: str = 'https://wilayah.id/api'
CACHE_TTL_SECONDS: float = 24 * 3600
REQUEST_TIMEOUT_SECONDS: float = 10.0


@dataclass(frozen=True)
class Region:
    code: str
    name: str
    postal_code: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Region:
        postal = data.get('postal_code') or data.get('postalCode')
        return cls(code=str(data['code']), name=str(data['name']),
                   postal_code=str(postal) if postal else None)


class RegionLookupError(Exception):
    """A region list could not be fetched or parsed."""


class RegionLookup(Protocol):
    async def list_provinces(self) -> list[Region]: ...
    async def list_regencies(self, province_code: str) -> list[Region]: ...
    async def list_districts(self, regency_code: str) -> list[Region]: ...
    async def list_villages(self, district_code: str) -> list[Region]: ...

# ===================================================================
# 1. LOOKUP COLLABORATORS
# ===================================================================

def parent_code_of(code: str) -> str:
    """'35.24.01' -> '35.24'; a province code has no parent."""
    return code.rsplit('.', 1)[0] if '.' in code else ''


class LocalRegionDataset:
    """
    Regions from one static JSON file: a list of {code, name, postal_code?}
    objects with dotted hierarchical codes. Children are found by parent code.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._regions: list[Region] | None = None

    def _load(self) -> list[Region]:
        if self._regions is None:
            try:
                raw = json.loads(self.path.read_text(encoding='utf-8'))
                self._regions = [Region.from_dict(item) for item in raw]
            except (OSError, ValueError, KeyError, TypeError) as e:
                raise RegionLookupError(f"Cannot read region data from {self.path}: {e}") from e
        return self._regions

    def _children(self, parent_code: str, depth: int) -> list[Region]:
        return [
            region for region in self._load()
            if region.code.count('.') == depth and parent_code_of(region.code) == parent_code
        ]

    async def list_provinces(self) -> list[Region]:
        return self._children('', 0)

    async def list_regencies(self, province_code: str) -> list[Region]:
        return self._children(province_code, 1)

    async def list_districts(self, regency_code: str) -> list[Region]:
        return self._children(regency_code, 2)

    async def list_villages(self, district_code: str) -> list[Region]:
        return self._children(district_code, 3)


class WilayahApiClient:
    """
    Client for the public wilayah.id API
    (GET {base}/{level}/{parent}.json -> {"data": [...]}).
    Responses are cached in memory for a day. Provinces can be served from a
    bundled local dataset instead of the network.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        client: httpx.AsyncClient | None = None,
        local_provinces: LocalRegionDataset | None = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self._client = client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
        self._local_provinces = local_provinces
        self._ttl = ttl_seconds
        self._cache: dict[str, tuple[float, list[Region]]] = {}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_list(self, url: str) -> list[Region]:
        cached = self._cache.get(url)
        if cached and cached[0] > time.monotonic():
            return cached[1]
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise RegionLookupError(f"{url} answered {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise RegionLookupError(f"Request to {url} failed: {e}") from e

        items = payload.get('data', []) if isinstance(payload, dict) else payload
        try:
            regions = [Region.from_dict(item) for item in items or []]
        except (KeyError, TypeError) as e:
            raise RegionLookupError(f"Unexpected payload from {url}: {e}") from e
        self._cache[url] = (time.monotonic() + self._ttl, regions)
        return regions

    def _url(self, level: str, parent_code: str = '') -> str:
        path = API_LEVEL_PATHS[level]
        return f"{self.base_url}/{path}/{parent_code}.json" if parent_code else f"{self.base_url}/{path}.json"

    async def list_provinces(self) -> list[Region]:
        if self._local_provinces is not None:
            return await self._local_provinces.list_provinces()
        return await self._get_list(self._url('province'))

    async def list_regencies(self, province_code: str) -> list[Region]:
        return await self._get_list(self._url('regency', province_code))

    async def list_districts(self, regency_code: str) -> list[Region]:
        return await self._get_list(self._url('district', regency_code))

    async def list_villages(self, district_code: str) -> list[Region]:
        return await self._get_list(self._url('village', district_code))

# ===================================================================
# 2. THE CASCADE
# ===================================================================

class RegionCascade:
    """
    Owns the option lists for the four region selectors and writes the
    selected codes (and the postal code) straight onto a StudentData.

    Selecting level n clears levels n+1..village, their options and the
    postal code in one step, then fetches the children of the new code. A
    fetch result is applied only if its parent is still the one selected,
    and a code is only accepted below the parent currently selected.
    Picking the region that is already selected changes nothing.
    """

    def __init__(
        self,
        lookup: RegionLookup,
        student: StudentData | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.lookup = lookup
        # Called after the levels below a new selection are cleared, before the fetch
        self.on_change = on_change
        self.student = student if student is not None else StudentData()
        self.options: dict[str, list[Region]] = {level: [] for level in LEVELS}
        self.loading: dict[str, bool] = {level: False for level in LEVELS}
        self.postal_code_locked: bool = False

    # --- read side -------------------------------------------------

    def selected(self, level: str) -> str:
        return getattr(self.student, level)

    @property
    def postal_code(self) -> str:
        return self.student.postal_code

    def label_for(self, level: str, code: str) -> str | None:
        return next((r.name for r in self.options[level] if r.code == code), None)

    def region_names(self) -> dict[str, str]:
        """Display names for the currently selected codes."""
        names: dict[str, str] = {}
        for level in LEVELS:
            code = self.selected(level)
            label = self.label_for(level, code) if code else None
            if label:
                names[code] = label
        return names

    # --- transitions -----------------------------------------------

    async def load_provinces(self) -> list[Region]:
        self.loading['province'] = True
        try:
            self.options['province'] = await self.lookup.list_provinces()
        except RegionLookupError as e:
            logger.warning(f"Failed to load provinces: {e}")
            self.options['province'] = []
        finally:
            self.loading['province'] = False
        return self.options['province']

    async def select_province(self, code: str) -> None:
        await self._select(0, code)

    async def select_regency(self, code: str) -> None:
        await self._select(1, code)

    async def select_district(self, code: str) -> None:
        await self._select(2, code)

    def select_village(self, code: str) -> None:
        """Sets the village; its postal code, if known, is filled in and locked."""
        if not self._belongs(3, code):
            return
        self.student.village = code
        village = next((r for r in self.options['village'] if r.code == code), None)
        if village and village.postal_code:
            self.student.postal_code = village.postal_code
            self.postal_code_locked = True
        else:
            self.student.postal_code = ''
            self.postal_code_locked = False

    def set_postal_code(self, value: str) -> bool:
        """Manual postal code entry; refused while a village has locked it."""
        if self.postal_code_locked:
            return False
        self.student.postal_code = value
        return True

    def reset(self, student: StudentData) -> None:
        """Starts over on a fresh record; the province list is kept."""
        self.student = student
        self._clear_below(0)

    def _clear_below(self, index: int) -> None:
        for level in LEVELS[index + 1:]:
            setattr(self.student, level, '')
            self.options[level] = []
            self.loading[level] = False
        self.student.postal_code = ''
        self.postal_code_locked = False

    def _belongs(self, index: int, code: str) -> bool:
        """False for a code whose parent is no longer the selected one."""
        if not code or index == 0:
            return True
        parent_level = LEVELS[index - 1]
        if parent_code_of(code) != self.selected(parent_level):
            logger.info(f"Ignoring {LEVELS[index]} {code}: {parent_level} is now '{self.selected(parent_level)}'")
            return False
        return True

    async def _select(self, index: int, code: str) -> None:
        level = LEVELS[index]
        if code == self.selected(level) or not self._belongs(index, code):
            return
        setattr(self.student, level, code)
        self._clear_below(index)
        await self._fetch_children(index, code)

    async def _fetch_children(self, parent_index: int, parent_code: str) -> None:
        parent_level = LEVELS[parent_index]
        child_level = LEVELS[parent_index + 1]
        if not parent_code:
            self.options[child_level] = []
            return

        fetchers = {
            'regency': self.lookup.list_regencies,
            'district': self.lookup.list_districts,
            'village': self.lookup.list_villages,
        }
        self.loading[child_level] = True
        if self.on_change:
            self.on_change()
        try:
            children = await fetchers[child_level](parent_code)
        except RegionLookupError as e:
            logger.warning(f"Failed to load {child_level} list for {parent_level} {parent_code}: {e}")
            children = []

        if self.selected(parent_level) != parent_code:
            logger.info(f"Discarding {child_level} list for superseded {parent_level} {parent_code}")
            return
        self.options[child_level] = children
        self.loading[child_level] = False
