from __future__ import annotations

from functools import lru_cache

from adpublish.platforms.base import AdPlatformAdapter
from adpublish.platforms.dry_run import DryRunAdapter


def get_platform_adapter(*, dry_run: bool = True) -> AdPlatformAdapter:
    """Return the platform adapter used for publishing and status sync.

    When dry_run=True the in-memory DryRunAdapter is returned; otherwise the
    real Meta Marketing API adapter.  Credentials are supplied per call, so a
    single adapter instance serves every campaign.
    """
    if dry_run:
        return DryRunAdapter()

    from adpublish.platforms.meta_ads import MetaAdsAdapter
    from adpublish.settings import settings

    return MetaAdsAdapter(
        app_secret=settings.META_APP_SECRET,
        api_version=settings.META_API_VERSION,
        default_page_id=settings.META_PAGE_ID,
        timeout=settings.PUBLISH_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def default_platform_adapter() -> AdPlatformAdapter:
    """Process-wide adapter built from settings.

    Shared so the dry-run registry (and the Meta image-hash cache) survives
    across requests and scheduled sweeps.
    """
    from adpublish.settings import settings

    return get_platform_adapter(dry_run=settings.USE_DRY_RUN_EXECUTION)
