from .profile import Profile
from .post import Post, ProfilePostGroup
from .extraction_batch_result import ExtractionBatchResult
from .sink_record import SinkRecord
from .rate_limit import RateLimitCounter, RateLimitStats
from .run_result import PostOutcome, RunResult, RunSummary

__all__ = [
    "Profile",
    "Post",
    "ProfilePostGroup",
    "ExtractionBatchResult",
    "SinkRecord",
    "RateLimitCounter",
    "RateLimitStats",
    "PostOutcome",
    "RunResult",
    "RunSummary",
]
