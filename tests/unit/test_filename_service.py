import re

from src.domain.services.filename_service import sanitize_filename


def clock():
    return 1704470400000


def test_typical_product_photo_name():
    assert sanitize_filename("My Product (NEW).heic", clock=clock) == "my-product-new_1704470400000.jpg"


def test_empty_or_missing_name_uses_prefix():
    assert sanitize_filename(None, clock=clock) == "product_1704470400000.jpg"
    assert sanitize_filename("", clock=clock) == "product_1704470400000.jpg"
    assert sanitize_filename(None, prefix="item", clock=clock) == "item_1704470400000.jpg"


def test_name_made_only_of_blacklisted_chars_falls_back_to_prefix():
    assert sanitize_filename("!!!@@@.png", clock=clock) == "product_1704470400000.jpg"


def test_leading_dot_is_not_an_extension():
    assert sanitize_filename(".env", clock=clock) == ".env_1704470400000.jpg"


def test_only_last_extension_is_stripped():
    assert sanitize_filename("archive.tar.gz", clock=clock) == "archive.tar_1704470400000.jpg"


def test_whitespace_and_hyphen_runs_collapse_and_edges_trimmed():
    out = sanitize_filename("  Spaced   out--name .jpg", clock=clock)
    assert out == "spaced-out-name_1704470400000.jpg"


def test_control_characters_removed():
    assert sanitize_filename("bad\x00na\x1fme\x7f\x85.jpg", clock=clock) == "badname_1704470400000.jpg"


def test_unicode_letters_are_kept():
    assert sanitize_filename("Café Été.png", clock=clock) == "café-été_1704470400000.jpg"


def test_truncated_to_fifty_characters():
    out = sanitize_filename("a" * 80 + ".jpg", clock=clock)
    stem, _ = out.split("_")
    assert stem == "a" * 50


def test_output_is_always_safe():
    out = sanitize_filename('we<ird>:"na/me\\|?*#$%^&~`+[x]{y}.webp')
    assert re.fullmatch(r"[^()\[\]{}<>:\"/\\|?*@#$%^&!~`+\s]+_\d{13}\.jpg", out)


def test_same_name_at_different_times_differs():
    first = sanitize_filename("Shirt.jpg", clock=lambda: 1000)
    second = sanitize_filename("Shirt.jpg", clock=lambda: 2000)
    assert first != second
    assert first.endswith(".jpg") and second.endswith(".jpg")
