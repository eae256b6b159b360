import pytest
from PIL import Image

from utils.qr_generator import generate_qr_code, qr_code_png


def test_generate_qr_code_returns_rgb_image():
    image = generate_qr_code("https://academy.example.com/verify/ENG-1-AAAAAA")

    assert isinstance(image, Image.Image)
    assert image.mode == "RGB"


def test_qr_code_png_has_png_signature():
    assert qr_code_png("https://academy.example.com/verify/ENG-1-AAAAAA").startswith(b"\x89PNG")


@pytest.mark.parametrize("value", ["", "   ", None])
def test_generate_qr_code_rejects_empty_data(value):
    with pytest.raises(ValueError):
        generate_qr_code(value)
