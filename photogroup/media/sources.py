"""Resolve image references into raw bytes.

An image reference is one of:

* an embedded ``data:`` URI, as produced by canvas or camera previews,
* a local file, given as a ``file://`` URI or a filesystem path,
* a remote ``http://`` or ``https://`` resource.

Local files come straight from the device camera pipeline and are the least
reliable source, so they are read through a ladder of progressively simpler
strategies with a short pause between attempts.

Which kinds are accepted, and from which hosts, is decided by the
:class:`UploadConfig` in use. Every source is read with the size limit
applied while reading.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import logging
import mimetypes
import socket
import time
import urllib.request
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlparse
from urllib.request import url2pathname

import requests

from photogroup.core.constants import DOWNLOAD_CHUNK_BYTES
from photogroup.errors import UploadError, ValidationError

from .models import ResolvedImage, UploadConfig

logger = logging.getLogger(__name__)

Strategy = Callable[[], ResolvedImage]

# Declared by clients that do not know the type.
UNDECLARED_TYPES = ("", "application/octet-stream")


def reference_scheme(image_ref: str) -> str:
    """Return the lowercased scheme of ``image_ref``, or "" for a bare path."""
    return image_ref.split(":", 1)[0].lower() if ":" in image_ref else ""


def _is_local(image_ref: str, scheme: str) -> bool:
    # Single-letter "schemes" are Windows drive letters.
    return scheme == "file" or image_ref.startswith("/") or len(scheme) <= 1


def ensure_public_host(hostname: str | None) -> None:
    """Reject hosts that resolve to loopback, private or reserved addresses."""
    if not hostname:
        raise ValidationError("Image URL has no host.")
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise UploadError(f"could not resolve image host {hostname}") from e
    for info in infos:
        address = ipaddress.ip_address(str(info[4][0]).split("%", 1)[0])
        if not address.is_global:
            logger.warning(f"Refusing image host {hostname} at {address}")
            raise ValidationError("Image URL must point to a public host.")


def check_image_reference(image_ref: str, config: UploadConfig) -> str:
    """Return the reference's scheme if ``config`` accepts it.

    Raises:
        ValidationError: If the reference kind or host is not accepted.
    """
    scheme = reference_scheme(image_ref)
    if scheme == "data":
        return scheme
    if scheme in ("http", "https"):
        if scheme not in config.remote_schemes:
            raise ValidationError(f"Image URLs must use {', '.join(config.remote_schemes)}.")
        if config.public_hosts_only:
            ensure_public_host(urlparse(image_ref).hostname)
        return scheme
    if _is_local(image_ref, scheme):
        if not config.allow_local_files:
            raise ValidationError("Local image files are not accepted.")
        return "file"
    raise ValidationError(f"Unsupported image reference scheme '{scheme}'.")


def ensure_within_limit(size: int, config: UploadConfig) -> None:
    if size > config.max_bytes:
        raise UploadError(
            f"image is {size} bytes, larger than the {config.max_bytes} byte limit"
        )


def resolve_image(image_ref: str, config: UploadConfig | None = None) -> ResolvedImage:
    """Dispatch on the reference's scheme and return its bytes.

    Raises:
        ValidationError: If ``config`` does not accept the reference.
        UploadError: If the reference cannot be read.
    """
    config = config or UploadConfig()
    scheme = check_image_reference(image_ref, config)

    if scheme == "data":
        return resolve_data_uri(image_ref)
    if scheme in ("http", "https"):
        return resolve_remote(image_ref, config)
    return resolve_local_file(image_ref, config)


def encode_data_uri(data: bytes, content_type: str | None) -> str:
    """Wrap raw bytes in a base64 ``data:`` URI."""
    return f"data:{content_type or ''};base64,{base64.b64encode(data).decode('ascii')}"


def declared_type(content_type: str | None, filename: str | None = None) -> str | None:
    """Return the declared content type, guessing from ``filename`` if absent."""
    content_type = (content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in UNDECLARED_TYPES:
        return content_type
    return _guess_type(filename) if filename else None


def resolve_data_uri(image_ref: str) -> ResolvedImage:
    """Decode a ``data:[<mediatype>][;base64],<payload>`` URI."""
    header, sep, payload = image_ref[len("data:") :].partition(",")
    if not sep:
        raise UploadError("malformed data URI")

    params = header.split(";")
    content_type = params[0].strip().lower() or None
    try:
        if "base64" in params[1:]:
            data = base64.b64decode(payload, validate=True)
        else:
            data = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise UploadError(f"could not decode data URI: {e}") from e
    return ResolvedImage(data=data, content_type=content_type)


def resolve_remote(image_ref: str, config: UploadConfig) -> ResolvedImage:
    """Download an image over HTTP(S), stopping once it exceeds the limit."""
    try:
        response = requests.get(
            image_ref,
            timeout=config.http_timeout,
            stream=True,
            allow_redirects=not config.public_hosts_only,
        )
        try:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            if length and length.isdigit():
                ensure_within_limit(int(length), config)

            chunks = []
            received = 0
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                received += len(chunk)
                ensure_within_limit(received, config)
                chunks.append(chunk)
        finally:
            response.close()
    except requests.RequestException as e:
        raise UploadError(f"could not download image: {e}") from e

    content_type = declared_type(response.headers.get("Content-Type"))
    return ResolvedImage(data=b"".join(chunks), content_type=content_type)


def _guess_type(path: str) -> str | None:
    return mimetypes.guess_type(path)[0]


def _read_path(path: Path, config: UploadConfig) -> ResolvedImage:
    ensure_within_limit(path.stat().st_size, config)
    return ResolvedImage(data=path.read_bytes(), content_type=_guess_type(str(path)))


def local_file_strategies(
    image_ref: str, config: UploadConfig
) -> list[tuple[str, Strategy]]:
    """Build the ordered retrieval ladder for a local file reference."""
    parsed = urlparse(image_ref)
    raw_path = parsed.path if parsed.scheme == "file" else image_ref

    def decoded_path() -> ResolvedImage:
        return _read_path(
            Path(url2pathname(unquote(raw_path))).expanduser().resolve(), config
        )

    def literal_path() -> ResolvedImage:
        return _read_path(Path(raw_path), config)

    def url_open() -> ResolvedImage:
        url = image_ref if parsed.scheme == "file" else Path(raw_path).as_uri()
        with urllib.request.urlopen(url) as response:  # nosec B310
            data = response.read(config.max_bytes + 1)
        ensure_within_limit(len(data), config)
        return ResolvedImage(data=data)

    return [
        ("decoded path", decoded_path),
        ("literal path", literal_path),
        ("url open", url_open),
    ]


def run_strategies(
    strategies: list[tuple[str, Strategy]], delay: float
) -> ResolvedImage:
    """Return the first non-empty result from ``strategies``, tried in order.

    An :class:`UploadError` from a strategy ends the ladder at once.

    Raises:
        UploadError: If every strategy fails or yields no bytes.
    """
    for attempt, (name, strategy) in enumerate(strategies):
        if attempt and delay > 0:
            time.sleep(delay)
        try:
            resolved = strategy()
        except UploadError:
            raise
        except Exception as e:
            logger.warning(f"Image retrieval via {name} failed: {e}")
            continue
        if resolved.data:
            return resolved
        logger.warning(f"Image retrieval via {name} returned no data")
    raise UploadError("exhausted retrieval strategies")


def resolve_local_file(image_ref: str, config: UploadConfig) -> ResolvedImage:
    """Read a local file through the retrieval ladder."""
    return run_strategies(
        local_file_strategies(image_ref, config), config.file_retry_delay
    )
