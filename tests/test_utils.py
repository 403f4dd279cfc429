# tests/test_utils.py
import string

from dealership.utils import make_vehicle_slug, new_slug_suffix, slugify


def test_slugify_transliterates_polish_letters():
    assert slugify("Łódź  Kraków!") == "lodz-krakow"
    assert slugify("  --Mercedes-Benz E-Class-- ") == "mercedes-benz-e-class"


def test_vehicle_slug_layout():
    assert make_vehicle_slug("NEW", "Mercedes-Benz", "E-Class", 2024, "abc123") == \
        "nowe-mercedes-benz-e-class-2024-abc123"
    assert make_vehicle_slug("USED", "BMW", "7 Series", 2021, "zz9") == "uzywane-bmw-7-series-2021-zz9"


def test_slug_suffix_is_short_and_url_safe():
    suffix = new_slug_suffix()
    assert len(suffix) == 6
    assert set(suffix) <= set(string.ascii_lowercase + string.digits)
