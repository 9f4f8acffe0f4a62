import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import pytest

from document import default_document
from scene import Node


@pytest.fixture
def tree():
    return default_document(200, 200)


def horizontal_path(y: float, x0: float = 0.0, x1: float = 20.0) -> Node:
    return Node.path(f"M {x0} {y} L {x1} {y}", attributes={"fill": "none"})
