from .settings import Settings, init_runtime

__all__ = ["Settings", "init_runtime"]
