"""
Configuration module for Elasticsearch Cluster Library.

Holds the validated client settings and the loaders that build them from
the environment, connection URLs and XML files.
"""

from elasticsearch_cluster_lib.config.settings import ClientConfig, canonicalize_urls
from elasticsearch_cluster_lib.config.loader import ConfigLoader

__all__ = ["ClientConfig", "ConfigLoader", "canonicalize_urls"]
