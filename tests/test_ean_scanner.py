"""Tests for the Gemini EAN scanner."""

import base64

import pytest

from allegro_listing.ean_scanner import EanScanner, normalize_image
from allegro_listing.errors import ConfigurationError, EanScanError

IMAGE_B64 = base64.b64encode(b"fake-image-bytes").decode()


class FakeGeminiResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, contents, generation_config=None):
        self.calls.append((contents, generation_config))
        if self.error:
            raise self.error
        return FakeGeminiResponse(self.text)


def test_normalize_image_data_url():
    assert normalize_image(f"data:image/png;base64,{IMAGE_B64}") == (IMAGE_B64, "image/png")


def test_normalize_image_bare_base64():
    assert normalize_image(f"  {IMAGE_B64}\n") == (IMAGE_B64, "image/jpeg")


def test_normalize_image_empty():
    with pytest.raises(EanScanError):
        normalize_image("   ")


def test_scan_returns_best_ean():
    """Test that the 13-digit code is picked from the model answer."""
    model = FakeModel("EAN: 5901234123457 (also 12345670)")
    scanner = EanScanner(api_key="key", model=model)

    assert scanner.scan(f"data:image/png;base64,{IMAGE_B64}") == "5901234123457"

    contents, config = model.calls[0]
    assert contents[1] == {"mime_type": "image/png", "data": b"fake-image-bytes"}
    assert config["temperature"] == 0


def test_scan_mime_override():
    model = FakeModel("12345670")
    EanScanner(api_key="key", model=model).scan(IMAGE_B64, mime_type="image/webp")
    assert model.calls[0][0][1]["mime_type"] == "image/webp"


def test_scan_without_ean_in_answer():
    """Test the 400 error when nothing readable comes back."""
    scanner = EanScanner(api_key="key", model=FakeModel("no barcode visible"))

    with pytest.raises(EanScanError) as excinfo:
        scanner.scan(IMAGE_B64)
    assert excinfo.value.http_status == 400


def test_scan_model_failure():
    """Test that upstream failures map to 502."""
    scanner = EanScanner(api_key="key", model=FakeModel(error=RuntimeError("quota exceeded")))

    with pytest.raises(EanScanError) as excinfo:
        scanner.scan(IMAGE_B64)
    assert excinfo.value.http_status == 502
    assert "quota exceeded" in str(excinfo.value)


def test_scan_invalid_base64():
    scanner = EanScanner(api_key="key", model=FakeModel("12345670"))
    with pytest.raises(EanScanError):
        scanner.scan("abc")


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        EanScanner().scan(IMAGE_B64)


def test_scan_file(tmp_path):
    """Test reading a photo from disk with a mime type from its extension."""
    path = tmp_path / "label.png"
    path.write_bytes(b"fake-image-bytes")
    model = FakeModel("5901234123457")

    assert EanScanner(api_key="key", model=model).scan_file(str(path)) == "5901234123457"
    assert model.calls[0][0][1]["mime_type"] == "image/png"
