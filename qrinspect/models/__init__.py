# qrinspect/models/__init__.py
from qrinspect.db.base import Base  # noqa: F401

# order matters due to FKs
from . import organization     # noqa: F401
from . import user             # noqa: F401
from . import template         # noqa: F401
from . import inspection       # noqa: F401
from . import scheduler_lock   # noqa: F401
from . import audit_log        # noqa: F401
