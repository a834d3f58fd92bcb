from __future__ import annotations

from choromap.util import format_id_list


def test_format_id_list_short():
    assert format_id_list([1, "06", 72]) == "1, 06, 72"


def test_format_id_list_truncates_with_remaining_count():
    assert format_id_list(range(15), limit=3) == "0, 1, 2, ... (+12 more)"
