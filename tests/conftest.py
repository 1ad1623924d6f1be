import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage")


def make_image_bytes(w=40, h=30, fmt="JPEG", color=(200, 100, 50), alpha=None) -> bytes:
    """Solid-color image; with ``alpha`` the left half gets that alpha and the right half stays opaque."""
    if alpha is None:
        arr = np.zeros((h, w, 3), dtype=np.uint8)
        arr[:, :] = color
        img = Image.fromarray(arr, mode="RGB")
    else:
        arr = np.zeros((h, w, 4), dtype=np.uint8)
        arr[:, :, :3] = color
        arr[:, :, 3] = 255
        arr[:, : w // 2, 3] = alpha
        img = Image.fromarray(arr, mode="RGBA")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_image_bytes(120, 80)


@pytest.fixture()
def png_bytes() -> bytes:
    return make_image_bytes(60, 90, fmt="PNG", color=(10, 200, 30))


@pytest.fixture()
def transparent_webp_bytes() -> bytes:
    return make_image_bytes(40, 20, fmt="WEBP", color=(0, 0, 255), alpha=0)


@pytest.fixture()
def settings(tmp_path):
    from src.config import Settings

    return Settings(supabase_disabled=True, local_storage_dir=tmp_path / "storage")


@pytest.fixture()
def client(settings) -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app(settings)
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def other_auth_header() -> dict[str, str]:
    return {"Authorization": "Bearer someone-else"}
