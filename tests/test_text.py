import pytest

from mevzuat_tara.core.text import is_truthy, normalize_title

SAMPLES = [
    "Özel  Yönetmelik!",
    "  Kanun (No. 5237) – Türk Ceza Kanunu  ",
    "İSTANBUL ılı GENELGESİ",
    "Genelge 2024/1",
    "çğıöşü ÇĞİÖŞÜ",
    "!!!",
    "",
]


def test_turkish_and_punctuation_fold_together():
    assert normalize_title("Özel  Yönetmelik!") == normalize_title("ozel yonetmelik")
    assert normalize_title("Özel  Yönetmelik!") == "ozel yonetmelik"


def test_dotted_and_dotless_i_fold_to_ascii():
    assert normalize_title("İSTANBUL ılı") == "istanbul ili"
    assert normalize_title("ISTANBUL ILI") == "istanbul ili"


@pytest.mark.parametrize("title", SAMPLES)
def test_normalize_is_idempotent(title):
    once = normalize_title(title)
    assert normalize_title(once) == once


def test_empty_titles_normalize_to_empty():
    assert normalize_title(None) == ""
    assert normalize_title("") == ""
    assert normalize_title("  !? ") == ""


@pytest.mark.parametrize("value", [True, "true", 1, "1", 1.0])
def test_truthy_values(value):
    assert is_truthy(value) is True


@pytest.mark.parametrize("value", [False, "false", "True", 0, 2, "0", "yes", None, [], {}, object()])
def test_everything_else_is_false(value):
    assert is_truthy(value) is False
