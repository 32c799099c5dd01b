"""API endpoint detection."""

from .core import PLACEHOLDER, dedupe_endpoints, normalize_path, route_path_from_file
from .detectors import CALL_IDIOMS, ApiEndpointDetector, extract_call_sites, extract_route_handlers

__all__ = [
    "ApiEndpointDetector",
    "CALL_IDIOMS",
    "PLACEHOLDER",
    "dedupe_endpoints",
    "extract_call_sites",
    "extract_route_handlers",
    "normalize_path",
    "route_path_from_file",
]
