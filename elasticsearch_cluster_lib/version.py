"""Version information for the Elasticsearch cluster library."""

import platform

__version__ = "1.0.0"

DEFAULT_USER_AGENT = (
    f"elasticsearch-cluster-lib/{__version__} "
    f"({platform.system().lower()}-{platform.machine().lower()})"
)
