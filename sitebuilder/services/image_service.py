"""Image services: turn stored image references into display URLs."""

from __future__ import annotations

import io
import logging
import posixpath
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from PIL import Image, ImageOps

if TYPE_CHECKING:
    from sitebuilder.models.site import SiteManifest, SiteModel

logger = logging.getLogger(__name__)

CLOUDINARY_BASE_URL = "https://res.cloudinary.com"
_COMPASS_GRAVITIES: frozenset[str] = frozenset({"north", "south", "east", "west"})
_FILL_CENTERING: dict[str, tuple[float, float]] = {
    "north": (0.5, 0.0),
    "south": (0.5, 1.0),
    "east": (1.0, 0.5),
    "west": (0.0, 0.5),
}
_DERIVATIVE_RE = re.compile(
    r"(?P<base>.+)_w(?P<width>\d+|auto)_h(?P<height>\d+|auto)"
    r"_c-(?P<crop>[a-z]+)_g-(?P<gravity>[a-z]+)(?P<ext>\.[A-Za-z0-9]+)"
)


@dataclass(frozen=True)
class ImageRef:
    """A stored image: which service holds it and the service-specific source."""

    service_id: str
    src: str
    alt: str = ""
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_data(cls, data: Any) -> ImageRef | None:
        """Build from frontmatter/manifest data; None when it is not an image ref."""
        if not isinstance(data, dict):
            return None
        service_id = data.get("service_id") or data.get("serviceId")
        src = data.get("src")
        if not service_id or not src:
            return None
        return cls(
            service_id=str(service_id),
            src=str(src),
            alt=str(data.get("alt") or ""),
            width=data.get("width"),
            height=data.get("height"),
        )


@dataclass(frozen=True)
class ImageTransformOptions:
    width: int | None = None
    height: int | None = None
    crop: str = "scale"
    gravity: str | None = None


class ImageService(Protocol):
    id: str

    def get_display_url(
        self,
        manifest: SiteManifest,
        ref: ImageRef,
        options: ImageTransformOptions,
        is_export: bool,
        url_prefix: str = "",
    ) -> str: ...


def derivative_path(src: str, options: ImageTransformOptions) -> str:
    """Name of the resized variant of ``src``.

    ``assets/images/cat.jpg`` at 300 wide becomes
    ``assets/images/cat_w300_hauto_c-scale_g-center.jpg``.
    """
    base, ext = posixpath.splitext(src)
    if not ext:
        raise ValueError(f"Source image has no extension: {src}")
    width = options.width or "auto"
    height = options.height or "auto"
    gravity = options.gravity or "center"
    return f"{base}_w{width}_h{height}_c-{options.crop}_g-{gravity}{ext}"


def parse_derivative_path(path: str) -> tuple[str, ImageTransformOptions] | None:
    """Source image and transform encoded in a derivative name; None otherwise."""
    match = _DERIVATIVE_RE.fullmatch(path)
    if match is None:
        return None
    width = None if match["width"] == "auto" else int(match["width"])
    height = None if match["height"] == "auto" else int(match["height"])
    options = ImageTransformOptions(
        width=width, height=height, crop=match["crop"], gravity=match["gravity"]
    )
    return f"{match['base']}{match['ext']}", options


def _scaled_size(size: tuple[int, int], width: int | None, height: int | None) -> tuple[int, int]:
    src_width, src_height = size
    if width and height:
        return width, height
    if width:
        return width, max(1, round(src_height * width / src_width))
    if height:
        return max(1, round(src_width * height / src_height)), height
    return size


def make_derivative(data: bytes, options: ImageTransformOptions) -> bytes:
    """Resize image bytes as described by ``options``, keeping the source format.

    ``fill`` crops to exactly width x height around the gravity point,
    ``fit`` shrinks into the box keeping the aspect ratio and ``scale``
    resizes to the given dimensions (one of them may be auto).

    Raises ValueError when ``data`` is not a readable image.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except OSError as exc:
        raise ValueError(f"Unreadable image: {exc}") from exc

    with img:
        image_format = img.format or "PNG"
        if options.crop == "fill" and options.width and options.height:
            centering = _FILL_CENTERING.get(options.gravity or "center", (0.5, 0.5))
            result = ImageOps.fit(img, (options.width, options.height), centering=centering)
        elif options.crop == "fit" and options.width and options.height:
            result = ImageOps.contain(img, (options.width, options.height))
        else:
            result = img.resize(_scaled_size(img.size, options.width, options.height))

        if image_format == "JPEG" and result.mode not in ("RGB", "L"):
            result = result.convert("RGB")
        buffer = io.BytesIO()
        result.save(buffer, format=image_format)
        return buffer.getvalue()


def find_image_refs(site: SiteModel) -> list[ImageRef]:
    """Every image reference in the manifest and in content frontmatter."""
    refs: dict[tuple[str, str], ImageRef] = {}

    def _walk(value: Any) -> None:
        if isinstance(value, dict):
            ref = ImageRef.from_data(value)
            if ref is not None:
                refs.setdefault((ref.service_id, ref.src), ref)
                return
            for child in value.values():
                _walk(child)
        elif isinstance(value, list):
            for child in value:
                _walk(child)

    manifest = site.manifest
    _walk([manifest.logo, manifest.favicon, dict(manifest.theme.config)])
    for content_file in site.content_files.values():
        _walk(dict(content_file.frontmatter))
    return list(refs.values())


class LocalImageService:
    """Images stored inside the site bundle."""

    id = "local"

    def get_display_url(
        self,
        manifest: SiteManifest,
        ref: ImageRef,
        options: ImageTransformOptions,
        is_export: bool,
        url_prefix: str = "",
    ) -> str:
        """Derivative path, relative in export mode and rooted in live mode.

        ``url_prefix`` is the relative asset prefix (``../``) for exports and
        the site root path for live previews.
        """
        path = derivative_path(ref.src, options)
        if is_export:
            return f"{url_prefix}{path}"
        return f"{url_prefix.rstrip('/')}/{path}"


class CloudinaryImageService:
    """Images hosted on Cloudinary, resized through URL transformations."""

    id = "cloudinary"

    def _transformation(self, options: ImageTransformOptions) -> str:
        crop = options.crop if options.crop in ("fill", "fit") else "scale"
        params = [f"c_{crop}"]
        if crop == "fill" and options.gravity:
            if options.gravity == "auto":
                params.append("g_auto")
            elif options.gravity == "center":
                params.append("g_xy_center")
            elif options.gravity in _COMPASS_GRAVITIES:
                params.append(f"g_{options.gravity}")
        if options.height:
            params.append(f"h_{options.height}")
        if options.width:
            params.append(f"w_{options.width}")
        return ",".join(params)

    def get_display_url(
        self,
        manifest: SiteManifest,
        ref: ImageRef,
        options: ImageTransformOptions,
        is_export: bool,
        url_prefix: str = "",
    ) -> str:
        """Absolute delivery URL; the same in live and export mode."""
        cloud_name = manifest.settings.cloudinary_cloud_name
        if not cloud_name:
            raise ValueError("Cloudinary cloud name is not configured for this site")
        transformation = self._transformation(options)
        return (
            f"{CLOUDINARY_BASE_URL}/{cloud_name}/image/upload/"
            f"{transformation}/f_auto/q_auto/{ref.src.lstrip('/')}"
        )


_SERVICES: dict[str, ImageService] = {
    LocalImageService.id: LocalImageService(),
    CloudinaryImageService.id: CloudinaryImageService(),
}


def get_active_image_service(manifest: SiteManifest) -> ImageService:
    """The image service selected in the site settings; local when unknown."""
    service_id = manifest.settings.image_service or LocalImageService.id
    service = _SERVICES.get(service_id)
    if service is None:
        logger.warning("Unknown image service %r for site %s; using local", service_id, manifest.site_id)
        return _SERVICES[LocalImageService.id]
    return service
