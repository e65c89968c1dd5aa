# riot/ddragon.py
# ============================================================================
# Data Dragon: versioned static data (champions, items, summoner spells, runes)
# Indexes are immutable snapshots: a reload builds a new index and swaps it in.
# ============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import aiohttp

from riftwatch.cache import CacheNamespace, CacheStore
from riftwatch.riot.errors import ReferenceDataError

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ddragon.leagueoflegends.com"


class ReferenceKind(str, Enum):
    CHAMPION = "champion"
    ITEM = "item"
    SUMMONER_SPELL = "summoner-spell"
    RUNE = "rune"


# ─── Descriptors ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Champion:
    id: int
    key: str          # internal identifier, e.g. "MonkeyKing"
    name: str         # display name, e.g. "Wukong"
    title: str
    roles: Tuple[str, ...]
    difficulty: int
    image_url: str


@dataclass(frozen=True)
class Item:
    id: int
    name: str
    description: str
    cost: int
    image_url: str


@dataclass(frozen=True)
class SummonerSpell:
    id: int
    name: str
    description: str
    cooldown: str
    image_url: str


@dataclass(frozen=True)
class Rune:
    id: int
    name: str
    description: str
    tree: str
    image_url: str


Descriptor = Union[Champion, Item, SummonerSpell, Rune]


@dataclass(frozen=True)
class ReferenceIndex:
    """One kind's lookup tables for one dataset version. Never mutated after build."""
    version: Optional[str] = None
    by_id: Mapping[int, Descriptor] = field(default_factory=lambda: MappingProxyType({}))
    by_name: Mapping[str, Descriptor] = field(default_factory=lambda: MappingProxyType({}))

    def __len__(self) -> int:
        return len(self.by_id)


# ─── Index builders ──────────────────────────────────────────────────────────
def build_champion_index(data: Dict[str, Any], version: str, cdn: str) -> ReferenceIndex:
    by_id: Dict[int, Champion] = {}
    by_name: Dict[str, Champion] = {}
    for key, raw in data.items():
        champ = Champion(
            id=int(raw["key"]),
            key=raw.get("id", key),
            name=raw["name"],
            title=raw.get("title", ""),
            roles=tuple(raw.get("tags", [])),
            difficulty=raw.get("info", {}).get("difficulty", 0),
            image_url=f"{cdn}/{version}/img/champion/{raw['image']['full']}",
        )
        by_id[champ.id] = champ
        # Both "monkeyking" and "wukong" find the same champion
        by_name[key.lower()] = champ
        by_name[champ.name.lower()] = champ
    return ReferenceIndex(version, MappingProxyType(by_id), MappingProxyType(by_name))


def build_item_index(data: Dict[str, Any], version: str, cdn: str) -> ReferenceIndex:
    by_id: Dict[int, Item] = {}
    for item_id, raw in data.items():
        iid = int(item_id)
        by_id[iid] = Item(
            id=iid,
            name=raw["name"],
            description=raw.get("plaintext") or raw.get("description", ""),
            cost=raw.get("gold", {}).get("total", 0),
            image_url=f"{cdn}/{version}/img/item/{iid}.png",
        )
    return ReferenceIndex(version, MappingProxyType(by_id))


def build_spell_index(data: Dict[str, Any], version: str, cdn: str) -> ReferenceIndex:
    by_id: Dict[int, SummonerSpell] = {}
    for raw in data.values():
        sid = int(raw["key"])
        by_id[sid] = SummonerSpell(
            id=sid,
            name=raw["name"],
            description=raw.get("description", ""),
            cooldown=raw.get("cooldownBurn", ""),
            image_url=f"{cdn}/{version}/img/spell/{raw['image']['full']}",
        )
    return ReferenceIndex(version, MappingProxyType(by_id))


def build_rune_index(trees: List[Dict[str, Any]], version: str, cdn: str) -> ReferenceIndex:
    by_id: Dict[int, Rune] = {}

    def _rune(raw: Dict[str, Any], tree: str) -> Rune:
        return Rune(
            id=raw["id"],
            name=raw.get("name") or raw.get("key", ""),
            description=raw.get("shortDesc") or raw.get("longDesc") or "",
            tree=tree,
            image_url=f"{cdn}/img/{raw.get('icon', '')}",
        )

    for tree in trees:
        # Trees (Precision, Domination, …) are resolvable like their runes
        by_id[tree["id"]] = _rune(tree, tree["name"])
        for slot in tree.get("slots", []):
            for raw in slot.get("runes", []):
                by_id[raw["id"]] = _rune(raw, tree["name"])
    return ReferenceIndex(version, MappingProxyType(by_id))


_BUILDERS = {
    ReferenceKind.CHAMPION: build_champion_index,
    ReferenceKind.ITEM: build_item_index,
    ReferenceKind.SUMMONER_SPELL: build_spell_index,
    ReferenceKind.RUNE: build_rune_index,
}

_FILES = {
    ReferenceKind.CHAMPION: "champion.json",
    ReferenceKind.ITEM: "item.json",
    ReferenceKind.SUMMONER_SPELL: "summoner.json",
    ReferenceKind.RUNE: "runesReforged.json",
}


# ─── Resolver ────────────────────────────────────────────────────────────────
class DataDragon:
    """
    Fetches and indexes the Data Dragon reference dataset.

    ``load_all()`` is the only method that performs network I/O (apart from
    ``get_version``). Every ``resolve_*`` call reads the currently published
    snapshot and never blocks.
    """

    def __init__(
        self,
        cache: CacheStore,
        base_url: str = DEFAULT_BASE_URL,
        locale: str = "en_US",
        timeout: float = 10.0,
    ):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.cdn = f"{self.base_url}/cdn"
        self.locale = locale
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._version: Optional[str] = None
        self._indices: Mapping[ReferenceKind, ReferenceIndex] = MappingProxyType(
            {kind: ReferenceIndex() for kind in ReferenceKind}
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session. No Riot token: the CDN is public."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _fetch(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        session = await self._get_session()
        try:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise ReferenceDataError(f"Data Dragon error {resp.status}: {url}")
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise ReferenceDataError(f"Data Dragon returned invalid JSON: {url}") from e
        except aiohttp.ClientError as e:
            raise ReferenceDataError(f"Data Dragon request failed: {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise ReferenceDataError(f"Data Dragon request timed out: {url}") from e

    # ─── Loading ───────────────────────────────────────────────────────
    async def get_version(self) -> str:
        """Latest dataset version, fetched at most once per reference-data TTL."""
        cached = self.cache.get(CacheNamespace.REFERENCE_DATA, "version")
        if cached:
            return cached

        versions = await self._fetch("/api/versions.json")
        if not isinstance(versions, list) or not versions:
            raise ReferenceDataError("Data Dragon returned no versions")
        version = versions[0]
        self.cache.set(CacheNamespace.REFERENCE_DATA, "version", version)
        if version != self._version:
            log.info(f"Data Dragon version: {version}")
        return version

    async def _load(self, kind: ReferenceKind, version: str) -> None:
        cache_key = f"{kind.value}-{version}"
        data = self.cache.get(CacheNamespace.REFERENCE_DATA, cache_key)
        fetched = data is None
        if fetched:
            payload = await self._fetch(f"/cdn/{version}/data/{self.locale}/{_FILES[kind]}")
            # runesReforged is a bare list, the other files wrap a "data" dict
            if kind is ReferenceKind.RUNE:
                data = payload
            elif isinstance(payload, dict):
                data = payload.get("data")
            if not isinstance(data, list if kind is ReferenceKind.RUNE else dict):
                raise ReferenceDataError(f"Unexpected {_FILES[kind]} layout (version {version})")

        try:
            index = _BUILDERS[kind](data, version, self.cdn)
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceDataError(f"Malformed {kind.name.lower()} entry in {_FILES[kind]}: {e!r}") from e
        if fetched:
            self.cache.set(CacheNamespace.REFERENCE_DATA, cache_key, data)
        # Publish a new mapping; readers holding the old one keep a complete view
        self._indices = MappingProxyType({**self._indices, kind: index})
        log.info(f"Loaded {len(index)} {kind.name.lower()} entries (version {version})")

    async def load_all(self) -> None:
        """Fetch the four collections concurrently and rebuild their indexes."""
        version = await self.get_version()
        log.info("Initializing Data Dragon...")

        results = await asyncio.gather(
            *(self._load(kind, version) for kind in ReferenceKind),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        # Published only once every kind is indexed at this version
        self._version = version
        log.info("Data Dragon initialized")

    # ─── Lookups (no I/O) ──────────────────────────────────────────────
    def index(self, kind: ReferenceKind) -> ReferenceIndex:
        return self._indices[kind]

    def resolve_by_id(self, kind: ReferenceKind, entity_id: int) -> Optional[Descriptor]:
        if kind is ReferenceKind.ITEM and entity_id == 0:
            return None  # empty inventory slot

        index = self._indices[kind]
        found = index.by_id.get(entity_id)
        if found is None and len(index):
            log.warning(f"Unknown {kind.name.lower()} id {entity_id} (version {index.version})")
        return found

    def resolve_by_name(self, kind: ReferenceKind, name: str) -> Optional[Descriptor]:
        return self._indices[kind].by_name.get(name.lower())

    def champion(self, champion_id: int) -> Optional[Champion]:
        return self.resolve_by_id(ReferenceKind.CHAMPION, champion_id)

    def champion_by_name(self, name: str) -> Optional[Champion]:
        return self.resolve_by_name(ReferenceKind.CHAMPION, name)

    def item(self, item_id: int) -> Optional[Item]:
        return self.resolve_by_id(ReferenceKind.ITEM, item_id)

    def summoner_spell(self, spell_id: int) -> Optional[SummonerSpell]:
        return self.resolve_by_id(ReferenceKind.SUMMONER_SPELL, spell_id)

    def rune(self, rune_id: int) -> Optional[Rune]:
        return self.resolve_by_id(ReferenceKind.RUNE, rune_id)

    def resolve_items(self, item_ids: List[int]) -> List[Optional[Item]]:
        return [self.item(iid) for iid in item_ids]

    def profile_icon_url(self, icon_id: int) -> str:
        return f"{self.cdn}/{self._version}/img/profileicon/{icon_id}.png"

    def describe_participant(self, participant: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the numeric ids of a match-v5 participant with display names."""
        champ = self.champion(participant.get("championId", 0))
        items = [participant.get(f"item{i}", 0) for i in range(7)]
        spells = [participant.get("summoner1Id", 0), participant.get("summoner2Id", 0)]

        keystone = secondary = None
        styles = participant.get("perks", {}).get("styles", [])
        if styles and styles[0].get("selections"):
            keystone = self.rune(styles[0]["selections"][0]["perk"])
        if len(styles) > 1:
            secondary = self.rune(styles[1].get("style", 0))

        return {
            "champion": champ.name if champ else participant.get("championName"),
            "items": [i.name for i in self.resolve_items(items) if i is not None],
            "summoner_spells": [s.name for s in map(self.summoner_spell, spells) if s is not None],
            "keystone": keystone.name if keystone else None,
            "secondary_tree": secondary.name if secondary else None,
        }

    def status(self) -> Dict[str, Any]:
        return {
            "version": self._version,
            "champions_loaded": len(self._indices[ReferenceKind.CHAMPION]),
            "items_loaded": len(self._indices[ReferenceKind.ITEM]),
            "spells_loaded": len(self._indices[ReferenceKind.SUMMONER_SPELL]),
            "runes_loaded": len(self._indices[ReferenceKind.RUNE]),
        }

    @property
    def loaded(self) -> bool:
        return all(len(index) for index in self._indices.values())
