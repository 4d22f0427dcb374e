from __future__ import annotations

from dataclasses import dataclass
import hashlib
import io
import logging
from pathlib import Path
import ssl
import threading
import time
from typing import Callable, Protocol
import urllib.error
import urllib.request

from PIL import Image, UnidentifiedImageError

from .errors import ImageFetchError
from .settings import DEFAULT_IMAGE_CACHE_DIR, DEFAULT_IMAGE_CACHE_SIZE, RenderSettings
from .single_flight import SingleFlight

LOGGER = logging.getLogger(__name__)


class ImageFetcher(Protocol):
    def fetch(self, url: str) -> bytes:
        ...


class UrlImageFetcher:
    """HTTP(S) GET through urllib.

    Certificate validation is disabled so self-signed image hosts keep working.
    """

    def __init__(self, timeout: float | None = None, user_agent: str = "imgtmpl/0.1") -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._ssl_context = ssl.create_default_context()
        self._ssl_context.check_hostname = False
        self._ssl_context.verify_mode = ssl.CERT_NONE

    def fetch(self, url: str) -> bytes:
        req = urllib.request.Request(url=url, headers={"User-Agent": self._user_agent}, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self._timeout, context=self._ssl_context) as resp:
                status = resp.status
                if status < 200 or status >= 300:
                    raise ImageFetchError(url, f"unexpected HTTP status {status}")
                return resp.read()
        except urllib.error.HTTPError as exc:
            raise ImageFetchError(url, f"unexpected HTTP status {exc.code}") from exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise ImageFetchError(url, str(exc)) from exc


@dataclass
class CachedImage:
    url: str
    image: Image.Image
    access_ns: int


def decode_image(content: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(content))
    img.load()
    return img


class RemoteImageCache:
    """Bounded in-memory image cache backed by optional local storage.

    Lookup order is memory, then `<local_dir>/<md5(url)>`, then a single-flight
    network fetch. Returned images are shared; callers must not mutate them.
    """

    def __init__(
        self,
        local_dir: str | Path = DEFAULT_IMAGE_CACHE_DIR,
        capacity: int = DEFAULT_IMAGE_CACHE_SIZE,
        save_local: bool = False,
        fetcher: ImageFetcher | None = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.local_dir = Path(local_dir)
        self.capacity = capacity
        self.save_local = save_local
        self._fetcher = fetcher or UrlImageFetcher()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CachedImage] = {}
        self._flights: SingleFlight[Image.Image] = SingleFlight()

    @classmethod
    def from_settings(cls, settings: RenderSettings, fetcher: ImageFetcher | None = None) -> "RemoteImageCache":
        return cls(
            local_dir=settings.image_cache_dir,
            capacity=settings.image_cache_size,
            save_local=settings.image_cache_save_local,
            fetcher=fetcher,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def urls(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def local_path(self, url: str) -> Path:
        return self.local_dir / hashlib.md5(url.encode("utf-8")).hexdigest()

    def resolve(self, url: str) -> Image.Image:
        img = self._lookup(url)
        if img is not None:
            return img
        img = self._load_local(url)
        if img is not None:
            self._insert(url, img)
            return img
        img, shared = self._flights.do(url, lambda: self._fetch_and_store(url))
        if shared:
            LOGGER.debug("remote image fetch shared between callers: url=%s", url)
        return img

    def _lookup(self, url: str) -> Image.Image | None:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            entry.access_ns = self._clock()
            return entry.image

    def _load_local(self, url: str) -> Image.Image | None:
        path = self.local_path(url)
        if not path.is_file():
            return None
        try:
            img = decode_image(path.read_bytes())
        except (OSError, UnidentifiedImageError) as exc:
            LOGGER.warning("ignoring undecodable local cache file %s: %s", path, exc)
            return None
        LOGGER.debug("loaded image from local cache: url=%s path=%s", url, path)
        return img

    def _fetch_and_store(self, url: str) -> Image.Image:
        LOGGER.debug("fetching remote image: url=%s", url)
        content = self._fetcher.fetch(url)
        try:
            img = decode_image(content)
        except (OSError, UnidentifiedImageError) as exc:
            raise ImageFetchError(url, f"undecodable image payload: {exc}") from exc
        LOGGER.debug("fetched remote image: url=%s length=%d format=%s", url, len(content), img.format)
        if self.save_local:
            self._save_local(url, content)
        self._insert(url, img)
        return img

    def _save_local(self, url: str, content: bytes) -> None:
        path = self.local_path(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def _insert(self, url: str, img: Image.Image) -> None:
        with self._lock:
            if url not in self._entries and len(self._entries) >= self.capacity:
                self._evict_oldest()
            self._entries[url] = CachedImage(url=url, image=img, access_ns=self._clock())

    def _evict_oldest(self) -> None:
        oldest: CachedImage | None = None
        for entry in self._entries.values():
            if oldest is None or entry.access_ns < oldest.access_ns:
                oldest = entry
        if oldest is not None:
            del self._entries[oldest.url]
            LOGGER.debug("evicted cached image: url=%s", oldest.url)
