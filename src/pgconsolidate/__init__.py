"""pgconsolidate - Reverse-engineer a PostgreSQL schema into re-applicable migrations."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("pgconsolidate")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
