import re
from deepsearch.app.utils.ids import generate_search_id, normalize_phone, split_location, to_base36

ID_RE = re.compile(r"^ds_[0-9a-z]+_[0-9a-z]{6}$")


def test_search_id_format_and_uniqueness():
    ids = [generate_search_id() for _ in range(10000)]
    assert all(ID_RE.match(i) for i in ids)
    assert len(set(ids)) == len(ids)


def test_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


def test_normalize_phone():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert normalize_phone("98.76.54") == "987654"


def test_split_location():
    assert split_location("Bengaluru, Karnataka, India") == ("Bengaluru", "India")
    assert split_location("Pune") == ("Pune", None)
    assert split_location(None) == (None, None)
