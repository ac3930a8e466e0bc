from typing import Optional

from fastapi import Header, Request

from costbook.services.recently_viewed_service import RecentlyViewedService


def get_recently_viewed(request: Request) -> Optional[RecentlyViewedService]:
    """
    Dependency returning the application's recently viewed registry.

    Usage in routes:
        recently_viewed = Depends(get_recently_viewed)
    """
    return getattr(request.app.state, "recently_viewed", None)


async def get_viewer_id(
    x_viewer_id: Optional[str] = Header(None, description="Who is viewing; used for recently viewed lists")
) -> str:
    return (x_viewer_id or "anonymous").strip() or "anonymous"
