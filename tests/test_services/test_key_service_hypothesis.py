"""Property-based tests for key decomposition invariants."""

from __future__ import annotations

import string

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from bucketindex.services.key_service import ancestor_folders, display_name, extension

PROPERTY_SETTINGS = settings(
    max_examples=250,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_SEGMENT = st.text(alphabet=string.ascii_letters + string.digits + "._-", min_size=1, max_size=8)
_KEY = st.builds("/".join, st.lists(_SEGMENT, min_size=1, max_size=5))


@PROPERTY_SETTINGS
@given(key=_KEY)
def test_ancestors_are_proper_prefixes_in_depth_order(key: str) -> None:
    folders = ancestor_folders(key)
    assert len(folders) == key.count("/")
    for depth, (folder_key, folder_name) in enumerate(folders, start=1):
        assert folder_key.endswith("/")
        assert folder_key.count("/") == depth
        assert key.startswith(folder_key)
        assert folder_key != key
        assert display_name(folder_key) == folder_name


@PROPERTY_SETTINGS
@given(key=_KEY)
def test_extension_comes_from_final_segment(key: str) -> None:
    ext = extension(key)
    final = key.rsplit("/", 1)[-1]
    if ext is None:
        assert "." not in final or final.endswith(".")
    else:
        assert ext == ext.lower()
        assert final.lower().endswith(f".{ext}")
        assert "/" not in ext
