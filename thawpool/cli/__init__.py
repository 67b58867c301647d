"""
thawpool.cli — command line entry points.

    thawpool quote --total 10 --active 5 --value 1
    thawpool simulate scenario.yaml --json
    thawpool config-show

Also runnable as `python -m thawpool.cli.main`.
"""

from .main import app, get_app

__all__ = ["app", "get_app"]
