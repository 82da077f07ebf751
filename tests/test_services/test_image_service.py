"""Tests for image references, display URLs and resized variants."""

from __future__ import annotations

import io
from dataclasses import replace

import pytest
from PIL import Image

from sitebuilder.filesystem.frontmatter import parse_content_file
from sitebuilder.models.site import SiteManifest, SiteModel, SiteSettings
from sitebuilder.services.image_service import (
    CloudinaryImageService,
    ImageRef,
    ImageTransformOptions,
    LocalImageService,
    derivative_path,
    find_image_refs,
    get_active_image_service,
    make_derivative,
    parse_derivative_path,
)

LOCAL_REF = ImageRef(service_id="local", src="assets/images/cat.jpg", alt="A cat")


def _image_bytes(size: tuple[int, int], image_format: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "red").save(buffer, format=image_format)
    return buffer.getvalue()


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def _manifest(service: str = "local", cloud_name: str = "") -> SiteManifest:
    return SiteManifest(
        site_id="demo",
        settings=SiteSettings(image_service=service, cloudinary_cloud_name=cloud_name),
    )


class TestImageRef:
    def test_from_frontmatter(self) -> None:
        ref = ImageRef.from_data({"serviceId": "local", "src": "assets/a.png", "alt": "A"})
        assert ref == ImageRef(service_id="local", src="assets/a.png", alt="A")

    def test_incomplete_data(self) -> None:
        assert ImageRef.from_data({"src": "a.png"}) is None
        assert ImageRef.from_data("a.png") is None


class TestDerivativePath:
    def test_width_only(self) -> None:
        path = derivative_path("assets/images/cat.jpg", ImageTransformOptions(width=300))
        assert path == "assets/images/cat_w300_hauto_c-scale_g-center.jpg"

    def test_fill_with_gravity(self) -> None:
        options = ImageTransformOptions(width=400, height=300, crop="fill", gravity="auto")
        assert derivative_path("a/b.png", options) == "a/b_w400_h300_c-fill_g-auto.png"

    def test_no_extension(self) -> None:
        with pytest.raises(ValueError, match="no extension"):
            derivative_path("assets/images/cat", ImageTransformOptions())


class TestParseDerivativePath:
    def test_width_only(self) -> None:
        parsed = parse_derivative_path("assets/images/cat_w300_hauto_c-scale_g-center.jpg")
        assert parsed == ("assets/images/cat.jpg", ImageTransformOptions(width=300, gravity="center"))

    def test_fill_with_gravity(self) -> None:
        parsed = parse_derivative_path("a/my_photo_w400_h300_c-fill_g-north.png")
        assert parsed == (
            "a/my_photo.png",
            ImageTransformOptions(width=400, height=300, crop="fill", gravity="north"),
        )

    @pytest.mark.parametrize("path", ["assets/images/cat.jpg", "assets/cat_w300.jpg", "cat_w1_h1_c-fill_g-x"])
    def test_plain_paths(self, path: str) -> None:
        assert parse_derivative_path(path) is None

    def test_generated_names_parse_back(self) -> None:
        options = ImageTransformOptions(width=400, height=300, crop="fill", gravity="auto")
        assert parse_derivative_path(derivative_path("a/b.png", options)) == ("a/b.png", options)


class TestMakeDerivative:
    def test_scale_keeps_aspect_ratio(self) -> None:
        data = make_derivative(_image_bytes((200, 100)), ImageTransformOptions(width=50))
        with _open(data) as img:
            assert img.size == (50, 25)
            assert img.format == "PNG"

    def test_scale_by_height(self) -> None:
        data = make_derivative(_image_bytes((200, 100)), ImageTransformOptions(height=20))
        with _open(data) as img:
            assert img.size == (40, 20)

    def test_fill_crops_to_exact_size(self) -> None:
        options = ImageTransformOptions(width=30, height=30, crop="fill", gravity="west")
        with _open(make_derivative(_image_bytes((200, 100)), options)) as img:
            assert img.size == (30, 30)

    def test_fit_stays_inside_box(self) -> None:
        options = ImageTransformOptions(width=50, height=50, crop="fit")
        with _open(make_derivative(_image_bytes((200, 100)), options)) as img:
            assert img.size == (50, 25)

    def test_jpeg_stays_jpeg(self) -> None:
        data = make_derivative(_image_bytes((80, 60), "JPEG"), ImageTransformOptions(width=40))
        with _open(data) as img:
            assert img.format == "JPEG"
            assert img.size == (40, 30)

    def test_unreadable_image(self) -> None:
        with pytest.raises(ValueError, match="Unreadable image"):
            make_derivative(b"not an image", ImageTransformOptions(width=10))


class TestFindImageRefs:
    def test_collects_manifest_and_frontmatter_refs(self, site: SiteModel) -> None:
        raw = (
            "---\ntitle: Gallery\nfeatured_image:\n  service_id: local\n  src: assets/images/a.png\n"
            "gallery:\n  - service_id: local\n    src: assets/images/b.png\n"
            "  - service_id: local\n    src: assets/images/a.png\n---\n"
        )
        logo = {"service_id": "local", "src": "assets/logo.png"}
        site = replace(
            site,
            manifest=replace(site.manifest, logo=logo),
            content_files={
                **site.content_files,
                "content/gallery.md": parse_content_file(raw, "content/gallery.md"),
            },
        )
        assert sorted(ref.src for ref in find_image_refs(site)) == [
            "assets/images/a.png",
            "assets/images/b.png",
            "assets/logo.png",
        ]

    def test_site_without_images(self, site: SiteModel) -> None:
        assert find_image_refs(site) == []


class TestLocalImageService:
    def test_export_is_relative(self) -> None:
        url = LocalImageService().get_display_url(
            _manifest(), LOCAL_REF, ImageTransformOptions(width=300), True, "../"
        )
        assert url == "../assets/images/cat_w300_hauto_c-scale_g-center.jpg"

    def test_live_is_rooted(self) -> None:
        url = LocalImageService().get_display_url(
            _manifest(), LOCAL_REF, ImageTransformOptions(width=300), False, "/sites/demo/view/"
        )
        assert url == "/sites/demo/view/assets/images/cat_w300_hauto_c-scale_g-center.jpg"


class TestCloudinaryImageService:
    def test_fill_transformation(self) -> None:
        ref = ImageRef(service_id="cloudinary", src="/folder/photo.jpg")
        options = ImageTransformOptions(width=400, height=300, crop="fill", gravity="auto")
        url = CloudinaryImageService().get_display_url(_manifest("cloudinary", "demo-cloud"), ref, options, True)
        assert url == (
            "https://res.cloudinary.com/demo-cloud/image/upload/"
            "c_fill,g_auto,h_300,w_400/f_auto/q_auto/folder/photo.jpg"
        )

    def test_unknown_crop_falls_back_to_scale(self) -> None:
        ref = ImageRef(service_id="cloudinary", src="photo.jpg")
        url = CloudinaryImageService().get_display_url(
            _manifest("cloudinary", "c"), ref, ImageTransformOptions(width=10, crop="pad"), False
        )
        assert "/c_scale,w_10/" in url

    def test_missing_cloud_name(self) -> None:
        ref = ImageRef(service_id="cloudinary", src="photo.jpg")
        with pytest.raises(ValueError, match="cloud name"):
            CloudinaryImageService().get_display_url(
                _manifest("cloudinary"), ref, ImageTransformOptions(), False
            )


class TestActiveService:
    def test_selected_service(self) -> None:
        assert get_active_image_service(_manifest("cloudinary", "c")).id == "cloudinary"

    def test_unknown_service_falls_back_to_local(self) -> None:
        assert get_active_image_service(_manifest("imgix")).id == "local"
