from __future__ import annotations

import re
import time
from typing import Callable

FILENAME_MAX_LENGTH = 50

# Punctuation that breaks storage keys or URLs, plus C0/C1 control characters
FILENAME_BLACKLIST = re.compile(r"[()\[\]{}<>:\"/\\|?*@#$%^&!~`+\u0000-\u001f\u007f-\u009f]")


def _now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_filename(
    original_name: str | None,
    prefix: str = "product",
    *,
    clock: Callable[[], int] | None = None,
    max_length: int = FILENAME_MAX_LENGTH,
) -> str:
    """Turn an arbitrary user filename into a safe, unique storage key.

    ``"My Product (NEW).heic"`` becomes ``"my-product-new_1704470400000.jpg"``.
    The extension is always ``.jpg`` since every stored rendition is JPEG.
    """
    stamp = (clock or _now_ms)()
    if not original_name or not isinstance(original_name, str):
        return f"{prefix}_{stamp}.jpg"

    last_dot = original_name.rfind(".")
    stem = original_name[:last_dot] if last_dot > 0 else original_name

    clean = FILENAME_BLACKLIST.sub("", stem.lower())
    clean = re.sub(r"\s+", "-", clean)
    clean = re.sub(r"-+", "-", clean)
    clean = clean.strip("-")[:max_length]

    if not clean:
        clean = prefix
    return f"{clean}_{stamp}.jpg"
