"""pacekeeper: adaptive request throttling and maintenance scheduling.

Sits between an application and a rate-limited remote API, pacing calls and
backing off on server rate-limit signals, and keeps the application's own
housekeeping (log retention, orphaned scheduled tasks) running on schedule.
"""

from importlib.metadata import PackageNotFoundError, version


def _package_version() -> str:
    try:
        return version("pacekeeper")
    except PackageNotFoundError:
        # Running from a source checkout
        return "0.0.0"


__version__ = _package_version()
