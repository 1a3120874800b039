# morphkit/adapters/packs/manifest.py
"""
Pack manifests: a JSON object keyed by language code, each value a
PackManifestEntry. Used to turn a language code into a load_pack URL.
"""
from __future__ import annotations

import json
from typing import Dict, Optional, Union

import structlog
from pydantic import ValidationError

from morphkit.adapters.packs.loader import PackLoader
from morphkit.core.domain.exceptions import ResourceLoadFailed
from morphkit.core.domain.models import PackManifestEntry

logger = structlog.get_logger()


def parse_manifest(raw: Union[bytes, str, dict]) -> Dict[str, PackManifestEntry]:
    """Parse manifest JSON; malformed entries are skipped with a warning."""
    data = json.loads(raw) if isinstance(raw, (bytes, str)) else raw
    if not isinstance(data, dict):
        raise ResourceLoadFailed("Pack manifest must be a JSON object keyed by language")

    entries: Dict[str, PackManifestEntry] = {}
    for lang, value in data.items():
        try:
            entries[lang] = PackManifestEntry.model_validate(value)
        except ValidationError as e:
            logger.warning("manifest_entry_invalid", lang=lang, error=str(e))
    return entries


def load_manifest(url: str, loader: Optional[PackLoader] = None) -> Dict[str, PackManifestEntry]:
    loader = loader or PackLoader()
    return parse_manifest(loader.fetch(url))


def pack_url_for(
    manifest: Dict[str, PackManifestEntry],
    lang: str,
    base_url: str = "",
) -> Optional[str]:
    """load_pack URL for `lang`, or None when the manifest has no entry."""
    entry = manifest.get(lang)
    if entry is None:
        return None
    return entry.to_pack_url(base_url)


__all__ = ["parse_manifest", "load_manifest", "pack_url_for"]
