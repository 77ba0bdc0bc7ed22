"""
schemadb - Schema-driven SQLite data access.

- schemadb.core: Database facade and its components
- schemadb.cli: ``schemadb`` command line (migrations, shell, backup)
"""

__version__ = "0.1.0"

from schemadb.core import *  # noqa
from schemadb.core import __all__ as _core_all

__all__ = ["__version__", *_core_all]
