"""
Web Service Clients

HTTP clients for the KEGG REST API and the MGnify JSON:API.
"""

from .base import RESTClient, ResourceNotFound
from .kegg_client import KEGGClient
from .mgnify_client import MGnifyClient

__all__ = [
    'RESTClient',
    'ResourceNotFound',
    'KEGGClient',
    'MGnifyClient',
]
