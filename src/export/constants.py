"""Constants for the HTTP export stage.

Centralizes HTTP, metric and logging constants shared across the export modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300

# Methods supported by the sender
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"

# Content type applied when none is configured
DEFAULT_MIME_TYPE = "application/json"
CONTENT_TYPE_HEADER = "Content-Type"

# Metric name prefixes; full names are "<prefix>-<redacted url>"
HTTP_EXPORT_ERRORS_NAME = "HttpExportErrors"
HTTP_EXPORT_SIZE_NAME = "HttpExportSize"
METRIC_TAG_URL = "url"

# Reservoir size for size histograms
METRICS_RESERVOIR_SIZE = 1028

# Logging
COMPONENT_HTTP_EXPORT = "http_export"
