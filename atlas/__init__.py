"""Atlas listing server package.

Read-side listing API for projects, tasks and knowledge items, exposed over
HTTP and as MCP tools.
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
__version__ = "0.3.0"
