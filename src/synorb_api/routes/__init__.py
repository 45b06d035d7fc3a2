from .health import make_health_blueprint
from .tools import make_tools_blueprint

__all__ = [
    "make_health_blueprint",
    "make_tools_blueprint",
]
