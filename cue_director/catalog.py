"""
Sound catalog and local curated library.

The catalog is the list of assets the remote decision service may refer to
by id. The local library searches the same kind of entries by free-text
query and is the first stop of the resolution chain.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator
from urllib.parse import quote

logger = logging.getLogger(__name__)


class SoundType(Enum):
    """Kind of asset."""
    MUSIC = "music"
    SFX = "sfx"

    @classmethod
    def parse(cls, value: str | SoundType) -> SoundType:
        if isinstance(value, SoundType):
            return value
        return cls.MUSIC if str(value).lower() == "music" else cls.SFX


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog asset.

    ``src`` is either absolute (``http(s)://...``) or relative to the
    backend base URL.
    """
    id: str
    type: SoundType
    src: str
    tags: tuple[str, ...] = ()
    loop: bool = False
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogEntry:
        """Build from a catalog payload item.

        Raises:
            ValueError: If ``id`` or ``src`` is missing.
        """
        entry_id = data.get("id") or data.get("file") or data.get("name")
        src = data.get("src") or data.get("file")
        if not entry_id or not src:
            raise ValueError(f"Catalog entry needs id and src: {data!r}")

        sound_type = SoundType.parse(data.get("type", "sfx"))
        tags = data.get("tags", data.get("keywords")) or []
        if isinstance(tags, str):
            tags = [tags]
        loop = data.get("loop")
        if loop is None:
            loop = sound_type == SoundType.MUSIC
        return cls(
            id=str(entry_id),
            type=sound_type,
            src=str(src),
            tags=tuple(str(t).lower() for t in tags),
            loop=bool(loop),
            name=str(data.get("name", "")),
        )


def resolve_src(src: str, base_url: str | None = None) -> str:
    """Absolute URL for a catalog ``src``."""
    if src.startswith("http://") or src.startswith("https://"):
        return src
    if not base_url:
        return src
    if not src.startswith("/"):
        src = "/" + src
    return base_url.rstrip("/") + src


class SoundCatalog:
    """Id-indexed catalog.

    Example:
        catalog = SoundCatalog.from_payload(
            {"sounds": [{"id": "calm-forest", "type": "music",
                         "tags": ["calm", "forest"], "src": "/audio/calm.mp3"}]},
            base_url="https://backend.example",
        )
        catalog.url_for("calm-forest")   # "https://backend.example/audio/calm.mp3"
    """

    def __init__(self, entries: Iterable[CatalogEntry] = (), base_url: str | None = None):
        self.base_url = base_url
        self._entries: dict[str, CatalogEntry] = {}
        for entry in entries:
            self._entries[entry.id] = entry

    @classmethod
    def from_payload(cls, payload: Any, base_url: str | None = None) -> SoundCatalog:
        """Accept either a bare list or a ``{"sounds": [...]}`` wrapper.

        Malformed items are skipped with a warning.
        """
        if isinstance(payload, dict):
            payload = payload.get("sounds", [])
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected catalog payload: {type(payload).__name__}")

        entries = []
        for item in payload:
            if not isinstance(item, dict):
                logger.warning(f"Skipping catalog item: {item!r}")
                continue
            try:
                entries.append(CatalogEntry.from_dict(item))
            except ValueError as e:
                logger.warning(f"Skipping catalog item: {e}")
        return cls(entries, base_url=base_url)

    def get(self, entry_id: str) -> CatalogEntry | None:
        return self._entries.get(entry_id)

    def url_for(self, entry_id: str) -> str | None:
        entry = self.get(entry_id)
        return resolve_src(entry.src, self.base_url) if entry else None

    def of_type(self, sound_type: SoundType) -> list[CatalogEntry]:
        return [e for e in self._entries.values() if e.type == sound_type]

    @property
    def music(self) -> list[CatalogEntry]:
        return self.of_type(SoundType.MUSIC)

    @property
    def sfx(self) -> list[CatalogEntry]:
        return self.of_type(SoundType.SFX)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Local library search
# =============================================================================

_SEP = re.compile(r"[-_/.]")
_WS = re.compile(r"\s+")

SYNONYMS: dict[str, tuple[str, ...]] = {
    "bark": ("dog", "bark"),
    "woof": ("dog", "bark"),
    "howl": ("wolf", "dog"),
    "creak": ("door", "wood", "creak"),
    "squeak": ("door", "wood", "creak"),
    "door": ("creak",),
    "whoosh": ("wind",),
    "swish": ("wind",),
    "lightning": ("thunder",),
    "meow": ("cat",),
    "explosion": ("blast", "bang"),
    "boom": ("blast", "bang"),
    "scream": ("woman", "horror"),
    "yell": ("woman", "horror"),
    "monster": ("growl", "undead"),
    "zombie": ("growl", "undead"),
    "ogre": ("monster", "creature"),
    "troll": ("monster", "creature"),
    "orc": ("monster", "creature"),
    "goblin": ("monster", "creature"),
    "beast": ("monster", "creature"),
    "roar": ("growl", "roar"),
    "snarl": ("growl", "roar"),
    "growl": ("growl", "roar"),
    "blade": ("sword", "metal"),
    "steel": ("sword", "metal"),
    "steps": ("footsteps",),
    "walking": ("footsteps",),
    "gallop": ("horse", "galloping"),
    "galloping": ("horse", "galloping"),
    "trot": ("horse", "galloping"),
    "trotting": ("horse", "galloping"),
}

_SFX_BONUSES = (
    (re.compile(r"footstep|walk"), re.compile(r"footstep|walk")),
    (re.compile(r"dog|bark"), re.compile(r"dog|bark|woof")),
    (re.compile(r"explosion|blast|boom"), re.compile(r"explosion|boom|bang|blast")),
)
_MUSIC_BONUS = re.compile(r"music|christmas|ambient|piano")


def _norm(text: str) -> str:
    return _WS.sub(" ", _SEP.sub(" ", str(text or "").lower())).strip()


def expand_query(query: str) -> list[str]:
    """Query tokens plus their synonyms, order-preserving and unique."""
    tokens = _norm(query).split()
    expanded = dict.fromkeys(tokens)
    for token in tokens:
        if token.startswith("footstep"):
            expanded.setdefault("footsteps")
        for synonym in SYNONYMS.get(token, ()):
            expanded.setdefault(synonym)
    return list(expanded)


@dataclass
class LibraryMatch:
    """Best local match for a query."""
    entry: CatalogEntry
    score: float
    url: str = field(default="")


class LocalLibrary:
    """Keyword-scored search over curated entries.

    Scoring:
        - +1 per expanded query token found in the entry's haystack
          (name, src, id and tags)
        - +2 when the whole normalized query appears verbatim
        - +0.5 category bonus for matching sfx families, or for music-ish
          haystacks when searching music

    A match needs a score of at least 1.
    """

    MIN_SCORE = 1.0

    def __init__(self, entries: Iterable[CatalogEntry] = (), base_url: str | None = None):
        self._entries = list(entries)
        self.base_url = base_url

    @classmethod
    def from_catalog(cls, catalog: SoundCatalog) -> LocalLibrary:
        return cls(catalog, base_url=catalog.base_url)

    @property
    def enabled(self) -> bool:
        return bool(self._entries)

    def best_match(self, query: str, sound_type: SoundType | str) -> LibraryMatch | None:
        sound_type = SoundType.parse(sound_type)
        base = _norm(query)
        if not base:
            return None
        tokens = expand_query(base)

        best: CatalogEntry | None = None
        best_score = 0.0
        for entry in self._entries:
            if entry.type != sound_type:
                continue
            hay = _norm(" ".join([entry.name, entry.src, entry.id, *entry.tags]))

            score = float(sum(1 for t in tokens if t and t in hay))
            if base in hay:
                score += 2
            if sound_type == SoundType.SFX:
                for hay_pattern, query_pattern in _SFX_BONUSES:
                    if hay_pattern.search(hay) and query_pattern.search(base):
                        score += 0.5
            elif _MUSIC_BONUS.search(hay):
                score += 0.5

            if score > best_score:
                best, best_score = entry, score

        if best is None or best_score < self.MIN_SCORE:
            return None
        url = quote(resolve_src(best.src, self.base_url), safe=":/?&=%#@+,;")
        logger.debug(f"Local library: {query} -> {best.id} (score: {best_score})")
        return LibraryMatch(entry=best, score=best_score, url=url)

    def search(self, query: str, sound_type: SoundType | str) -> str | None:
        """URL of the best-scoring entry, or None."""
        match = self.best_match(query, sound_type)
        return match.url if match else None

    def __len__(self) -> int:
        return len(self._entries)
