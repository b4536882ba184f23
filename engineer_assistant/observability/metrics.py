from prometheus_client import Counter, Histogram

# -------------------------
# HTTP metrics
# -------------------------

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["path", "method", "status"],
)

# -------------------------
# Analysis (generative backend) metrics
# -------------------------

ANALYSIS_REQUESTS_TOTAL = Counter(
    "analysis_requests_total",
    "Total image analysis requests sent to the generative backend",
    ["result", "model"],
)

ANALYSIS_SECONDS = Histogram(
    "analysis_seconds",
    "End-to-end latency of one image analysis in seconds",
    ["model"],
)

# -------------------------
# Camera capture metrics
# -------------------------

CAMERA_EVENTS_TOTAL = Counter(
    "camera_events_total",
    "Camera capture flow events",
    ["event", "facing_mode"],
)
