import pytest

from helpers import make_document, make_image


@pytest.fixture
def stage_image():
    return make_image(800, 600)


@pytest.fixture
def stage_document(stage_image):
    return make_document(image=stage_image)
