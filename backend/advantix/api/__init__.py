"""
API Routers package.

Re-export the router modules so `advantix.main` can import and register them.
"""

from . import auth  # noqa: F401
from . import campaigns  # noqa: F401
from . import clients  # noqa: F401
from . import farming_accounts  # noqa: F401
from . import finance  # noqa: F401
from . import gher  # noqa: F401
from . import permissions  # noqa: F401
from . import users  # noqa: F401
from . import work_reports  # noqa: F401
