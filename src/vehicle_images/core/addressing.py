"""Object addressing scheme shared by upload handling, serving and reprocessing.

Version 1 of the scheme maps a stored blob ``(bucket, object_key)`` to the
application path ``/objects/<bucket>/<object_key>``. Fresh uploads live under
``uploads/<id>`` in the images bucket. All translations between upload URLs,
application paths and storage refs go through ``ObjectAddressingScheme``.
"""

import re
import uuid
from typing import List, Tuple
from urllib.parse import unquote, urlsplit

from .exceptions import InvalidPathError
from .models import ImageObjectRef, NormalizedImagePath

SCHEME_VERSION = 1
OBJECTS_PREFIX = "/objects/"
UPLOADS_MARKER = "uploads"

# <bucket>.s3.amazonaws.com, <bucket>.s3.<region>.amazonaws.com, <bucket>.s3-<region>.amazonaws.com
_VIRTUAL_HOST_RE = re.compile(r"^(?P<bucket>[a-z0-9][a-z0-9.\-]*?)\.s3[.\-]")


def _split_segments(path: str) -> List[str]:
    return [unquote(segment) for segment in path.split("/") if segment]


class ObjectAddressingScheme:
    """Bidirectional mapping between upload URLs, application paths and storage refs."""

    version = SCHEME_VERSION

    def __init__(
        self,
        default_bucket: str,
        prefix: str = OBJECTS_PREFIX,
        uploads_marker: str = UPLOADS_MARKER,
    ):
        if not default_bucket:
            raise ValueError("default_bucket must not be empty")
        self.default_bucket = default_bucket
        self.prefix = "/" + prefix.strip("/") + "/"
        self.uploads_marker = uploads_marker

    def path_for(self, ref: ImageObjectRef) -> NormalizedImagePath:
        """Build the application path for a storage ref."""
        return f"{self.prefix}{ref.bucket}/{ref.object_key}"

    def matches(self, path: str) -> bool:
        """Check whether a path belongs to this addressing scheme."""
        return isinstance(path, str) and path.startswith(self.prefix)

    def resolve(self, path: NormalizedImagePath) -> ImageObjectRef:
        """
        Recover the storage ref behind an application path.

        Raises:
            InvalidPathError: If the path is outside the scheme or lacks a bucket or key.
        """
        if not self.matches(path):
            raise InvalidPathError(f"Path {path!r} does not start with {self.prefix!r}")

        remainder = path[len(self.prefix):]
        bucket, _, object_key = remainder.partition("/")
        if not bucket or not object_key:
            raise InvalidPathError(f"Path {path!r} is missing a bucket or object key")
        return ImageObjectRef(bucket=bucket, object_key=object_key)

    def ref_from_upload_url(self, upload_url: str) -> ImageObjectRef:
        """
        Extract the storage ref from a (signed) upload URL.

        Path-style URLs carry the bucket as the first path segment; virtual-hosted
        S3 URLs carry it in the host name. Query string and fragment are ignored.

        Raises:
            InvalidPathError: If no bucket and object key can be found.
        """
        parts = urlsplit(upload_url or "")
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise InvalidPathError(f"Not an absolute http(s) URL: {upload_url!r}")

        segments = _split_segments(parts.path)
        host_match = _VIRTUAL_HOST_RE.match(parts.hostname or "")
        if host_match:
            bucket = host_match.group("bucket")
            key_segments = segments
        elif segments:
            bucket, key_segments = segments[0], segments[1:]
        else:
            bucket, key_segments = "", []

        if not bucket or not key_segments:
            raise InvalidPathError(f"URL {upload_url!r} has no bucket/object key path")
        return ImageObjectRef(bucket=bucket, object_key="/".join(key_segments))

    def normalize(self, upload_url: str) -> NormalizedImagePath:
        """
        Map an upload URL to its stable application path.

        Raises:
            InvalidPathError: If the URL does not carry a bucket and object key.
        """
        return self.path_for(self.ref_from_upload_url(upload_url))

    def fallback_path(self, upload_url: str) -> NormalizedImagePath:
        """
        Best-effort path built from the ``uploads/<id>`` segment pair of a URL.

        Raises:
            InvalidPathError: If the URL has no uploads marker followed by an id.
        """
        segments = _split_segments(urlsplit(upload_url or "").path)
        try:
            marker_index = segments.index(self.uploads_marker)
        except ValueError:
            raise InvalidPathError(
                f"URL {upload_url!r} has no {self.uploads_marker!r} segment"
            ) from None

        if marker_index + 1 >= len(segments):
            raise InvalidPathError(
                f"URL {upload_url!r} has no identifier after {self.uploads_marker!r}"
            )
        object_id = segments[marker_index + 1]
        return self.path_for(
            ImageObjectRef(
                bucket=self.default_bucket,
                object_key=f"{self.uploads_marker}/{object_id}",
            )
        )

    def normalize_with_fallback(self, upload_url: str) -> Tuple[NormalizedImagePath, bool]:
        """
        Normalize an upload URL, falling back to marker extraction on failure.

        Returns:
            Tuple of (normalized path, whether the fallback was used)

        Raises:
            InvalidPathError: If neither the URL nor the fallback yields a path.
        """
        try:
            return self.normalize(upload_url), False
        except InvalidPathError:
            return self.fallback_path(upload_url), True

    def new_upload_key(self) -> str:
        """Generate the object key for a fresh upload."""
        return f"{self.uploads_marker}/{uuid.uuid4()}"

    def new_upload_ref(self) -> ImageObjectRef:
        """Generate a storage ref for a fresh upload in the default bucket."""
        return ImageObjectRef(bucket=self.default_bucket, object_key=self.new_upload_key())
