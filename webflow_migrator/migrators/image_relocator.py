"""
Copy externally hosted images into the owned bucket and return CDN URLs.

Objects are stored under a deterministic path::

    website/collection/<type>/<slug>/<field>-<filename>

so that relocating the same image twice always targets the same object.
URLs that already point at the CDN are returned unchanged without any
network call, which makes relocation safe to repeat.

Objects are uploaded with ``Cache-Control: public, max-age=31536000``.
Re-uploading different bytes to an existing path is therefore not visible
through the CDN until the cached copy expires.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

import requests
from bs4 import BeautifulSoup
from PIL import Image

from webflow_migrator.config import MigrationConfig
from webflow_migrator.migrators.storage import ObjectStorage
from webflow_migrator.utils.errors import ImageRelocationError

MAX_IMAGE_BYTES = 50 * 1024 * 1024
DEFAULT_CACHE_CONTROL = "public, max-age=31536000"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "avif": "image/avif",
}
# Uploaded as-is even when re-encoding is enabled
_VERBATIM_EXTENSIONS = ("svg", "gif", "webp")


@dataclass
class RelocatedImage:
    original_url: Optional[str]
    url: Optional[str]
    path: Optional[str] = None
    skipped: bool = False
    reused: bool = False

    ok = True


@dataclass
class RelocationFailure:
    original_url: str
    field: str
    reason: str

    ok = False

    @property
    def url(self) -> str:
        # callers keep the original URL when relocation fails
        return self.original_url

    def to_dict(self) -> dict:
        return {"field": self.field, "url": self.original_url, "reason": self.reason}


RelocationResult = Union[RelocatedImage, RelocationFailure]


def is_cdn_url(url: Optional[str], cdn_base_url: str) -> bool:
    """True when ``url`` is served from the same host as ``cdn_base_url``."""
    if not url or not cdn_base_url:
        return False
    host = (urlparse(url).hostname or "").lower()
    return bool(host) and host == (urlparse(cdn_base_url).hostname or "").lower()


def sanitize_filename(name: str) -> str:
    name = re.sub(r"\s+", "-", name.strip())
    name = re.sub(r"[^A-Za-z0-9._-]", "", name)
    return name.lower()


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def original_filename(url: str) -> str:
    """Sanitized basename of the URL path, ``image.jpg`` when there is none."""
    basename = unquote(urlparse(url).path).rstrip("/").rsplit("/", 1)[-1]
    filename = sanitize_filename(basename).strip(".")
    if not filename:
        return "image.jpg"
    if not _extension(filename):
        filename = f"{filename}.jpg"
    return filename


def destination_path(content_type: str, slug: str, field_name: str, filename: str) -> str:
    return f"website/collection/{content_type}/{slug}/{field_name}-{filename}"


def _as_webp_name(filename: str) -> str:
    if _extension(filename) in _VERBATIM_EXTENSIONS:
        return filename
    return filename.rsplit(".", 1)[0] + ".webp"


def _is_webp(data: bytes) -> bool:
    return data[:4] == b"RIFF" and data[8:12] == b"WEBP"


def encode_webp(data: bytes, quality: int = 80) -> Optional[bytes]:
    """Re-encode image bytes as WebP, or ``None`` if Pillow cannot decode them."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            if image.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in image.mode or "transparency" in image.info
                image = image.convert("RGBA" if has_alpha else "RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="WEBP", quality=quality)
            return buffer.getvalue()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        print(f"[WARNING] Could not re-encode image as WebP: {e}")
        return None


class ImageRelocator:
    """Download images from their source host and upload them to storage."""

    def __init__(
        self,
        storage: ObjectStorage,
        *,
        cdn_base_url: Optional[str] = None,
        compress_to_webp: bool = False,
        webp_quality: int = 80,
        timeout: float = 30.0,
        cache_control: str = DEFAULT_CACHE_CONTROL,
        reuse_existing_objects: bool = False,
        http: Any = None,
    ) -> None:
        self.storage = storage
        self.cdn_base_url = cdn_base_url or storage.cdn_base_url
        self.compress_to_webp = compress_to_webp
        self.webp_quality = webp_quality
        self.timeout = timeout
        self.cache_control = cache_control
        self.reuse_existing_objects = reuse_existing_objects
        # anything with a requests-compatible ``get``
        self.http = http or requests

    @classmethod
    def from_config(cls, config: MigrationConfig, storage: ObjectStorage, **kwargs: Any) -> "ImageRelocator":
        options = dict(
            cdn_base_url=config.storage.cdn_base_url,
            compress_to_webp=config.migration.compress_to_webp,
            webp_quality=config.migration.webp_quality,
            timeout=config.migration.image_timeout,
            cache_control=config.storage.cache_control,
            reuse_existing_objects=config.migration.reuse_existing_objects,
        )
        options.update(kwargs)
        return cls(storage, **options)

    def _download(self, url: str) -> Tuple[Optional[bytes], Optional[str], Optional[str]]:
        """Return ``(data, content_type, None)`` or ``(None, None, reason)``."""
        try:
            resp = self.http.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout, stream=True)
        except requests.Timeout:
            return None, None, f"timeout after {self.timeout:g}s"
        except requests.RequestException as e:
            return None, None, f"connection error: {e}"
        try:
            if not 200 <= resp.status_code < 300:
                return None, None, f"HTTP {resp.status_code}"
            declared = resp.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > MAX_IMAGE_BYTES:
                return None, None, "image larger than 50MB"
            buffer = bytearray()
            for chunk in resp.iter_content(chunk_size=64 * 1024):
                buffer.extend(chunk)
                if len(buffer) > MAX_IMAGE_BYTES:
                    return None, None, "image larger than 50MB"
        except requests.Timeout:
            return None, None, f"timeout after {self.timeout:g}s"
        except requests.RequestException as e:
            return None, None, f"connection error: {e}"
        finally:
            resp.close()
        if not buffer:
            return None, None, "empty body"
        content_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        return bytes(buffer), content_type or None, None

    def relocate(self, source_url: Optional[str], content_type: str, slug: str, field_name: str) -> RelocationResult:
        """Relocate one image and return where it now lives.

        Empty URLs and URLs already on the CDN come back unchanged with
        ``skipped=True``.  Download and upload problems are returned as a
        :class:`RelocationFailure`; this method does not raise for them.
        """
        if not source_url or not source_url.strip() or is_cdn_url(source_url, self.cdn_base_url):
            return RelocatedImage(original_url=source_url, url=source_url, skipped=True)

        filename = original_filename(source_url)
        if self.compress_to_webp:
            filename = _as_webp_name(filename)
        path = destination_path(content_type, slug, field_name, filename)

        if self.reuse_existing_objects:
            try:
                found = self.storage.exists(path)
            except Exception as e:
                print(f"[WARNING] Could not check {path}: {e.__class__.__name__}: {e}")
                found = False
            if found:
                return RelocatedImage(
                    original_url=source_url, url=self.storage.public_url(path), path=path, reused=True
                )

        data, served_type, reason = self._download(source_url)
        if data is None:
            print(f"[WARNING] Image {source_url} not relocated: {reason}")
            return RelocationFailure(original_url=source_url, field=field_name, reason=reason or "download failed")

        ext = _extension(filename)
        mime = CONTENT_TYPES.get(ext) or (served_type if served_type and served_type.startswith("image/") else "image/jpeg")
        if self.compress_to_webp and ext == "webp" and not _is_webp(data):
            encoded = encode_webp(data, self.webp_quality)
            if encoded is None:
                # keep the source bytes under their own extension
                filename = original_filename(source_url)
                path = destination_path(content_type, slug, field_name, filename)
                fallback_ext = _extension(filename)
                mime = CONTENT_TYPES.get(fallback_ext) or served_type or "application/octet-stream"
            else:
                data = encoded

        try:
            url = self.storage.upload(data, path, mime, self.cache_control)
        except ImageRelocationError as e:
            print(f"[WARNING] Image {source_url} not relocated: {e}")
            return RelocationFailure(original_url=source_url, field=field_name, reason=f"upload failed: {e}")
        except Exception as e:
            # any backend error leaves the original URL in place
            print(f"[WARNING] Image {source_url} not relocated: {e.__class__.__name__}: {e}")
            return RelocationFailure(
                original_url=source_url, field=field_name, reason=f"upload failed: {e.__class__.__name__}: {e}"
            )
        return RelocatedImage(original_url=source_url, url=url, path=path)

    def relocate_rich_text(
        self, html: Optional[str], content_type: str, slug: str, field_name: str
    ) -> Tuple[Optional[str], List[RelocationResult]]:
        """Relocate every ``<img src>`` of a rich-text field.

        Images are named ``<field>-1``, ``<field>-2``... in document order.
        The HTML is returned untouched when no ``src`` changed.
        """
        if not html or "<img" not in html:
            return html, []
        soup = BeautifulSoup(html, "html.parser")
        results: List[RelocationResult] = []
        changed = False
        for n, img in enumerate(soup.find_all("img", src=True), start=1):
            result = self.relocate(img["src"], content_type, slug, f"{field_name}-{n}")
            results.append(result)
            if isinstance(result, RelocatedImage) and not result.skipped and result.url != img["src"]:
                img["src"] = result.url
                changed = True
        return (str(soup) if changed else html), results
