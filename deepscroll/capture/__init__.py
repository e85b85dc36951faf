from deepscroll.capture.content import ContentScript
from deepscroll.capture.host import PlaywrightScrollHost, ScrollHost
from deepscroll.capture.orchestrator import CaptureOrchestrator
from deepscroll.capture.rate_limiter import CaptureRateLimiter
from deepscroll.capture.resolver import ScrollTargetResolver
from deepscroll.capture.screenshot import PlaywrightScreenshotter, classify_failure

__all__ = [
    "CaptureOrchestrator",
    "CaptureRateLimiter",
    "ContentScript",
    "PlaywrightScreenshotter",
    "PlaywrightScrollHost",
    "ScrollHost",
    "ScrollTargetResolver",
    "classify_failure",
]
