"""Identity -> quota store owned by a RateLimiter.

The store lives from process start to process end. An optional
``max_identities`` bound evicts the least recently admitted identity.
"""

from collections import OrderedDict
from typing import Optional, Tuple

from tutorgate.app.core.logging import get_logger
from tutorgate.app.services.rate_limit.models import (
    DEFAULT_WINDOWS,
    IdentityQuota,
    WindowSpec,
)

logger = get_logger(__name__)


class QuotaStore:
    """In-memory mapping of identities to their quota windows."""

    def __init__(
        self,
        window_specs: Tuple[WindowSpec, ...] = DEFAULT_WINDOWS,
        max_identities: Optional[int] = None,
    ):
        """Initialize the store.

        Args:
            window_specs: Windows created for each new identity, in evaluation order
            max_identities: LRU bound on tracked identities (None = unbounded)
        """
        if max_identities is not None and max_identities < 1:
            raise ValueError("max_identities must be at least 1")
        self.window_specs = tuple(window_specs)
        self._max_identities = max_identities
        self._quotas: OrderedDict[str, IdentityQuota] = OrderedDict()

    def get(self, identity: str) -> Optional[IdentityQuota]:
        """Look up an identity without creating it or touching LRU order."""
        return self._quotas.get(identity)

    def get_or_create(self, identity: str, now_ms: int) -> IdentityQuota:
        """Fetch an identity's quota, creating fresh windows on first use."""
        quota = self._quotas.get(identity)
        if quota is None:
            quota = IdentityQuota.create(self.window_specs, now_ms)
            self._quotas[identity] = quota
            self._enforce_limit()
        else:
            self._quotas.move_to_end(identity)
        return quota

    def _enforce_limit(self) -> None:
        if self._max_identities is None:
            return
        while len(self._quotas) > self._max_identities:
            evicted, _ = self._quotas.popitem(last=False)
            logger.debug(f"Evicted rate limit state for identity {evicted}")

    def __contains__(self, identity: object) -> bool:
        return identity in self._quotas

    def __len__(self) -> int:
        return len(self._quotas)
