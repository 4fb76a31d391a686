"""Tests for the object addressing scheme."""

import pytest

from vehicle_images.core.addressing import ObjectAddressingScheme, SCHEME_VERSION
from vehicle_images.core.exceptions import InvalidPathError
from vehicle_images.core.models import ImageObjectRef


@pytest.fixture()
def scheme():
    return ObjectAddressingScheme(default_bucket="vehicle-images")


class TestPathForAndResolve:
    def test_path_for(self, scheme):
        ref = ImageObjectRef(bucket="vehicle-images", object_key="uploads/abc123")

        assert scheme.path_for(ref) == "/objects/vehicle-images/uploads/abc123"

    @pytest.mark.parametrize(
        "object_key",
        ["uploads/abc123", "uploads/2024/05/photo.jpg", "a", "uploads/with space"],
    )
    def test_resolve_inverts_path_for(self, scheme, object_key):
        ref = ImageObjectRef(bucket="vehicle-images", object_key=object_key)

        assert scheme.resolve(scheme.path_for(ref)) == ref

    @pytest.mark.parametrize(
        "path",
        [
            "/images/vehicle-images/uploads/abc",
            "https://example.com/objects/vehicle-images/uploads/abc",
            "/objects/",
            "/objects/vehicle-images",
            "/objects/vehicle-images/",
            "",
        ],
    )
    def test_resolve_rejects_paths_outside_scheme(self, scheme, path):
        with pytest.raises(InvalidPathError):
            scheme.resolve(path)

    def test_matches(self, scheme):
        assert scheme.matches("/objects/vehicle-images/uploads/abc")
        assert not scheme.matches("https://cdn.example.com/car.jpg")
        assert not scheme.matches(None)

    def test_custom_prefix_is_normalized(self):
        scheme = ObjectAddressingScheme(default_bucket="b", prefix="media")

        assert scheme.prefix == "/media/"
        assert scheme.path_for(ImageObjectRef(bucket="b", object_key="k")) == "/media/b/k"

    def test_scheme_is_versioned(self, scheme):
        assert scheme.version == SCHEME_VERSION == 1

    def test_empty_default_bucket_is_rejected(self):
        with pytest.raises(ValueError):
            ObjectAddressingScheme(default_bucket="")


class TestNormalize:
    def test_path_style_signed_url(self, scheme):
        url = (
            "https://s3.us-east-1.amazonaws.com/vehicle-images/uploads/abc123"
            "?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Signature=deadbeef"
        )

        assert scheme.normalize(url) == "/objects/vehicle-images/uploads/abc123"

    def test_virtual_hosted_url(self, scheme):
        url = "https://vehicle-images.s3.us-east-2.amazonaws.com/uploads/abc123?X-Amz-Expires=900"

        assert scheme.normalize(url) == "/objects/vehicle-images/uploads/abc123"

    def test_legacy_virtual_hosted_url(self, scheme):
        url = "https://vehicle-images.s3.amazonaws.com/uploads/abc123"

        assert scheme.normalize(url) == "/objects/vehicle-images/uploads/abc123"

    def test_ignores_query_and_fragment(self, scheme):
        first = scheme.normalize("http://localhost:9000/vehicle-images/uploads/x?sig=1#frag")
        second = scheme.normalize("http://localhost:9000/vehicle-images/uploads/x?sig=2")

        assert first == second == "/objects/vehicle-images/uploads/x"

    def test_decodes_percent_escapes(self, scheme):
        url = "https://fake-s3.local/vehicle-images/uploads/my%20car.jpg"

        assert scheme.normalize(url) == "/objects/vehicle-images/uploads/my car.jpg"

    def test_normalized_path_resolves_to_upload_location(self, scheme):
        path = scheme.normalize("https://fake-s3.local/vehicle-images/uploads/abc123?sig=x")

        assert scheme.resolve(path) == ImageObjectRef(
            bucket="vehicle-images", object_key="uploads/abc123"
        )

    @pytest.mark.parametrize(
        "url",
        [
            "not a url",
            "/uploads/abc123",
            "ftp://fake-s3.local/vehicle-images/uploads/abc",
            "https://fake-s3.local/",
            "https://fake-s3.local/vehicle-images",
            "https://vehicle-images.s3.amazonaws.com/",
            "",
        ],
    )
    def test_rejects_urls_without_bucket_and_key(self, scheme, url):
        with pytest.raises(InvalidPathError):
            scheme.normalize(url)


class TestFallback:
    def test_fallback_from_uploads_marker(self, scheme):
        assert (
            scheme.fallback_path("s3://somewhere/else/uploads/abc123/extra")
            == "/objects/vehicle-images/uploads/abc123"
        )

    @pytest.mark.parametrize(
        "url", ["https://fake-s3.local/vehicle-images/images/abc", "/uploads/", "nonsense"]
    )
    def test_fallback_without_marker_and_id_fails(self, scheme, url):
        with pytest.raises(InvalidPathError):
            scheme.fallback_path(url)

    def test_normalize_with_fallback_prefers_normal_form(self, scheme):
        path, used_fallback = scheme.normalize_with_fallback(
            "https://fake-s3.local/other-bucket/uploads/abc"
        )

        assert path == "/objects/other-bucket/uploads/abc"
        assert used_fallback is False

    def test_normalize_with_fallback_uses_fallback(self, scheme):
        path, used_fallback = scheme.normalize_with_fallback("/uploads/abc123")

        assert path == "/objects/vehicle-images/uploads/abc123"
        assert used_fallback is True

    def test_normalize_with_fallback_raises_when_both_fail(self, scheme):
        with pytest.raises(InvalidPathError):
            scheme.normalize_with_fallback("not a url")


class TestNewUploadRef:
    def test_new_upload_refs_are_unique_and_in_default_bucket(self, scheme):
        first = scheme.new_upload_ref()
        second = scheme.new_upload_ref()

        assert first != second
        assert first.bucket == "vehicle-images"
        assert first.object_key.startswith("uploads/")
        assert len(first.object_key) > len("uploads/")
