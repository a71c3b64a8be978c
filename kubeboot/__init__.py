# pylint: disable=missing-docstring
from importlib import metadata

try:
    __version__ = metadata.version('kubeboot')
except metadata.PackageNotFoundError:
    __version__ = '0.1.0'

# Defining some constants
LABEL_NAMESPACE = "eks.amazonaws.com"
DEFAULT_BOUNDARY = "//"
DEFAULT_SERVICE_CIDR = "172.20.0.0/16"
DEFAULT_MAX_PODS = 58
MAX_PODS_WITH_USE_MAX_PODS = 110
