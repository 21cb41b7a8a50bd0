"""Backend lookup and connection factories."""

import functools
import importlib

from ward.service.backends.base import Connection, ConnectionFactory

BACKENDS = {
    "systemctl": "ward.service.backends.systemctl.SystemctlConnection",
}


def get_connection_factory(name: str = "systemctl", **options) -> ConnectionFactory:
    """Get a factory that opens connections to the named backend.

    Args:
        name: Backend name (currently only 'systemctl').
        **options: Keyword arguments passed to the connection class.

    Returns:
        Zero-argument callable returning a new Connection.

    Raises:
        ValueError: If the named backend doesn't exist.
    """
    if name not in BACKENDS:
        raise ValueError(f"Unknown backend: {name}. Available: {list(BACKENDS)}")

    # Import dynamically to avoid loading unnecessary backends
    module_path, class_name = BACKENDS[name].rsplit(".", 1)
    module = importlib.import_module(module_path)
    connection_class = getattr(module, class_name)
    return functools.partial(connection_class, **options)


__all__ = ["BACKENDS", "Connection", "ConnectionFactory", "get_connection_factory"]
