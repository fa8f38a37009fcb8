from mangarr.sources.base import SourceBase, build_source
from mangarr.sources.asurascans import AsuraScansSource
from mangarr.sources.cubari import CubariSource
from mangarr.sources.flamecomics import FlameComicsSource
from mangarr.sources.mangadex import MangaDexSource
from mangarr.sources.mangaplus import MangaPlusSource
from mangarr.sources.tcbscans import TCBScansSource

__all__ = [
    "SourceBase",
    "build_source",
    "AsuraScansSource",
    "CubariSource",
    "FlameComicsSource",
    "MangaDexSource",
    "MangaPlusSource",
    "TCBScansSource",
]
