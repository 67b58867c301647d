"""
thawpool test suite package.

Shared fixtures live in `conftest.py`; every test builds its own engine on a
deterministic `ManualBlockSource`, so tests never depend on wall time or on
each other.
"""
