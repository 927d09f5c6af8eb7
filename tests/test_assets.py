import asyncio

import httpx
import pytest

from assets import (
    EmbeddableImage,
    HttpFetcher,
    compute_aspect_ratio,
    load_logo,
    logo_size,
)
from conftest import FakeFetcher, png_bytes


def _transport(status=200, content=b""):
    return httpx.MockTransport(lambda request: httpx.Response(status, content=content))


class TestHttpFetcher:
    def test_success_returns_bytes(self):
        fetcher = HttpFetcher(transport=_transport(200, b"abc"))
        assert asyncio.run(fetcher.fetch("https://cdn.test/logo.png")) == b"abc"

    def test_non_success_returns_none(self):
        fetcher = HttpFetcher(transport=_transport(404))
        assert asyncio.run(fetcher.fetch("https://cdn.test/logo.png")) is None

    def test_relative_url_reads_static_dir(self, tmp_path):
        (tmp_path / "company").mkdir()
        (tmp_path / "company" / "company_logo.png").write_bytes(b"img")
        fetcher = HttpFetcher(static_dir=str(tmp_path))
        assert asyncio.run(fetcher.fetch("/company/company_logo.png")) == b"img"
        assert asyncio.run(fetcher.fetch("company/missing.png")) is None


class TestLoadLogo:
    def test_404_means_no_logo(self):
        fetcher = HttpFetcher(transport=_transport(404))
        assert asyncio.run(load_logo("https://cdn.test/logo.png", fetcher)) is None

    def test_network_error_means_no_logo(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        fetcher = HttpFetcher(transport=httpx.MockTransport(boom))
        assert asyncio.run(load_logo("https://cdn.test/logo.png", fetcher)) is None

    def test_loaded_image_is_embeddable(self):
        logo = asyncio.run(load_logo("https://cdn.test/logo.jpg", FakeFetcher(payload=b"\xff\xd8")))
        assert logo.mime_type == "image/jpeg"
        assert logo.data_url.startswith("data:image/jpeg;base64,")

    def test_empty_url(self):
        fetcher = FakeFetcher(payload=b"x")
        assert asyncio.run(load_logo("", fetcher)) is None
        assert fetcher.calls == []


class TestAspectRatio:
    def test_png_dimensions(self):
        assert compute_aspect_ratio(EmbeddableImage(png_bytes(200, 100))) == pytest.approx(2.0)

    def test_undecodable_is_none(self):
        assert compute_aspect_ratio(EmbeddableImage(b"not an image")) is None

    def test_zero_dimension_is_none(self):
        class ZeroProbe:
            def probe(self, data):
                return 0, 10

        assert compute_aspect_ratio(EmbeddableImage(b"x"), ZeroProbe()) is None

    def test_no_image(self):
        assert compute_aspect_ratio(None) is None


class TestLogoSize:
    def test_height_first(self):
        assert logo_size(1.5, 20, 34) == pytest.approx((30, 20))

    def test_wide_logo_clamped_to_width(self):
        w, h = logo_size(4.0, 20, 34)
        assert w == pytest.approx(34)
        assert h == pytest.approx(8.5)

    def test_square_without_ratio(self):
        assert logo_size(None, 20, 34) == (20, 20)
