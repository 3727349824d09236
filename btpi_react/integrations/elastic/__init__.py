"""
Elasticsearch (and OpenSearch-based Wazuh indexer) HTTP client.
"""

from .elastic_http import HEALTHY_CLUSTER_STATES, ElasticHttpClient, is_security_exception

__all__ = ["ElasticHttpClient", "HEALTHY_CLUSTER_STATES", "is_security_exception"]
