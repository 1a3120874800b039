# morphkit/adapters/packs/loader.py
"""
Pack loader: turns a pack URL into verified, ready-to-mount bytes.

Pack URL convention (query parameters):

    https://cdn.example.org/fr/analyser.hfstol.gz
        ?sha256=<hex digest of the fetched bytes>
        &gen=<URL of the generation transducer>
        &gensha256=<hex digest of the generation bytes>

Steps for each resource: fetch (cache → network, or local file) → sha256
over the fetched bytes → gunzip when the gzip magic is present.
"""
from __future__ import annotations

import gzip
import hashlib
import zlib
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import requests
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from morphkit.adapters.engines.hfst_native import url_to_path
from morphkit.adapters.packs.cache import PackCache
from morphkit.core.domain.exceptions import DecompressionFailed, IntegrityMismatch, ResourceLoadFailed
from morphkit.shared.config import settings

logger = structlog.get_logger()

GZIP_MAGIC = b"\x1f\x8b"

_RESERVED_PARAMS = ("sha256", "gen", "gensha256")

# Exceptions we retry on (transient network errors)
RETRYABLE_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)


@dataclass(frozen=True)
class PackRequest:
    """A parsed pack URL."""
    url: str
    sha256: Optional[str] = None
    gen_url: Optional[str] = None
    gen_sha256: Optional[str] = None


def parse_pack_url(pack_url: str) -> PackRequest:
    """Split the integrity / generation parameters off a pack URL."""
    parsed = urlparse(pack_url)
    params = parse_qsl(parsed.query, keep_blank_values=False)
    found = {k: v for k, v in params if k in _RESERVED_PARAMS}
    rest = [(k, v) for k, v in params if k not in _RESERVED_PARAMS]
    url = urlunparse(parsed._replace(query=urlencode(rest)))
    return PackRequest(
        url=url,
        sha256=found.get("sha256") or None,
        gen_url=found.get("gen") or None,
        gen_sha256=found.get("gensha256") or None,
    )


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_integrity(data: bytes, expected: Optional[str], url: str) -> None:
    """Raise IntegrityMismatch when `expected` is given and does not match."""
    if not expected:
        return
    actual = sha256_hex(data)
    if actual != expected.strip().lower():
        raise IntegrityMismatch(url, expected, actual)


def is_gzip(data: bytes) -> bool:
    return len(data) > 2 and data[:2] == GZIP_MAGIC


def decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecompressionFailed(str(e)) from e


def maybe_decompress(data: bytes, url: str = "") -> bytes:
    """Gunzip if the gzip marker is present; fall back to raw bytes on failure."""
    if not is_gzip(data):
        return data
    try:
        out = decompress(data)
    except DecompressionFailed as e:
        logger.warning("pack_decompression_failed", url=url, error=str(e))
        return data
    logger.info("pack_decompressed", url=url, compressed=len(data), size=len(out))
    return out


def mount_name(url: str, role: str) -> str:
    """
    File name a resource is mounted under, chosen by suffix:
    *.pmhfst → <role>.pmhfst, anything else → <role>.hfstol.
    """
    path = urlparse(url).path.lower()
    if path.endswith(".gz"):
        path = path[:-3]
    suffix = ".pmhfst" if path.endswith(".pmhfst") else ".hfstol"
    return f"{role}{suffix}"


def _is_local(url: str) -> bool:
    return urlparse(url).scheme in ("", "file")


@retry(
    stop=stop_after_attempt(settings.FETCH_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    reraise=True,
)
def _http_get(session: requests.Session, url: str, timeout: int) -> bytes:
    response = session.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


class PackLoader:
    """
    Fetches pack resources.

    Local paths and file:// URLs are read from disk. Remote URLs go through the
    PackCache when one is configured (match, then fetch, then store), and are
    fetched directly otherwise.
    """

    def __init__(
        self,
        cache: Optional[PackCache] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.cache = cache
        self.session = session or requests.Session()
        self.timeout = timeout or settings.FETCH_TIMEOUT_SEC

    def fetch(self, url: str) -> bytes:
        """Raw bytes for `url`. Raises ResourceLoadFailed."""
        if _is_local(url):
            path = url_to_path(url)
            try:
                data = path.read_bytes()
            except OSError as e:
                raise ResourceLoadFailed(f"Cannot read {path}: {e}") from e
            logger.info("pack_read_local", path=str(path), size=len(data))
            return data

        if self.cache is not None:
            cached = self.cache.match(url)
            if cached is not None:
                logger.info("pack_cache_hit", url=url, size=len(cached))
                return cached

        try:
            data = _http_get(self.session, url, self.timeout)
        except requests.RequestException as e:
            raise ResourceLoadFailed(f"Fetch failed for {url}: {e}") from e

        logger.info("pack_downloaded", url=url, size=len(data))
        if self.cache is not None:
            self.cache.put(url, data)
        return data

    def load(self, url: str, expected_sha256: Optional[str] = None) -> bytes:
        """
        Fetch, verify and decompress one resource.

        Raises:
            ResourceLoadFailed: the bytes could not be fetched.
            IntegrityMismatch: the digest of the fetched bytes is wrong.
        """
        data = self.fetch(url)
        verify_integrity(data, expected_sha256, url)
        return maybe_decompress(data, url)


__all__ = [
    "GZIP_MAGIC",
    "PackRequest",
    "PackLoader",
    "parse_pack_url",
    "sha256_hex",
    "verify_integrity",
    "is_gzip",
    "decompress",
    "maybe_decompress",
    "mount_name",
]
