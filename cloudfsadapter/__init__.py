"""
    A filesystem adapter for OpenStack Object Storage (Swift) and Rackspace Cloud Files.
"""
from cloudfsadapter.constants import version

__version__ = version
