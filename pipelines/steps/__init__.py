# Namespace for pipeline steps
from .check_quota import CheckQuota  # noqa: F401
from .fetch_profiles import FetchCandidates, TruncateToQuota  # noqa: F401
from .extract_posts import ExtractPosts, ReconcilePosts  # noqa: F401
from .persist_posts import PersistPosts  # noqa: F401
from .rotate_profiles import IncrementQuota, ResetWhenExhausted  # noqa: F401
