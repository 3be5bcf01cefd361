import base64
from io import BytesIO

import pytest
from PIL import Image

from services.errors import InvalidImage, ProviderError
from services.images import ImagePart, TextPart, first_image, joined_text, parse_data_url, to_png


def _jpeg() -> bytes:
    out = BytesIO()
    Image.new("RGB", (4, 4), (255, 0, 0)).save(out, format="JPEG")
    return out.getvalue()


def test_parse_data_url():
    raw = _jpeg()
    url = "data:image/jpeg;base64," + base64.b64encode(raw).decode("ascii")
    part = parse_data_url(url)
    assert part == ImagePart(raw, "image/jpeg")
    assert part.to_data_url() == url


def test_parse_bare_base64_assumes_png():
    part = parse_data_url(base64.b64encode(b"abc").decode("ascii"))
    assert part.mime_type == "image/png"
    assert part.data == b"abc"


@pytest.mark.parametrize(
    "value",
    [None, "", "data:image/png;base64", "data:text/plain;base64,aGk=", "%%%not-base64%%%"],
)
def test_parse_rejects_bad_payloads(value):
    with pytest.raises(InvalidImage):
        parse_data_url(value)


def test_to_png_converts_jpeg():
    png = to_png(ImagePart(_jpeg(), "image/jpeg"))
    with Image.open(BytesIO(png)) as img:
        assert img.format == "PNG"
        assert img.size == (4, 4)


def test_to_png_rejects_garbage():
    with pytest.raises(InvalidImage):
        to_png(ImagePart(b"not an image", "image/png"))


def test_first_image_and_text():
    parts = [TextPart("here "), ImagePart(b"x"), TextPart("you go")]
    assert first_image(parts) == ImagePart(b"x")
    assert joined_text(parts) == "here you go"
    with pytest.raises(ProviderError):
        first_image([TextPart("only words")])
    with pytest.raises(ProviderError):
        joined_text([ImagePart(b"x")])
