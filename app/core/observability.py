from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "bookreviews_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "bookreviews_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

POST_TRANSITIONS = Counter(
    "bookreviews_post_transitions_total",
    "Post status changes applied through the workflow gate",
    ["role", "source", "target"],
)

WORKFLOW_REJECTIONS = Counter(
    "bookreviews_workflow_rejections_total",
    "Workflow requests rejected by the gate",
    ["code"],
)

PAGE_VIEWS = Counter(
    "bookreviews_page_views_total",
    "Tracked page views",
    ["page"],
)
