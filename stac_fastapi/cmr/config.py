"""API configuration."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from stac_pydantic.version import STAC_VERSION

from stac_fastapi.types.config import ApiSettings

logger = logging.getLogger(__name__)

CLOUD_STAC_ROOT = "/cloudstac"
CLOUD_HOLDINGS_TAG = "gov.nasa.earthdatacloud.s3"


def _cmr_config(settings: "CmrSettings") -> Dict[str, Any]:
    # Every CMR call is identified with the same client id
    config: Dict[str, Any] = {
        "base_url": settings.cmr_url.rstrip("/"),
        "headers": {
            "Client-Id": settings.cmr_client_id,
            "Accept": "application/json",
        },
        "follow_redirects": True,
    }

    # Include timeout setting if set, httpx's default otherwise
    if settings.cmr_timeout is not None:
        config["timeout"] = settings.cmr_timeout

    return config


class CmrSettings(ApiSettings):
    """
    API settings.

    Set CMR_STAC_RELATIVE_ROOT_URL to `/cloudstac` to restrict every search to
    collections hosted on cloud storage. Set BROWSE_PATH (for example
    `year/month/day`) to expose date partitioned browse catalogs below each
    collection.
    """

    cmr_url: str = "https://cmr.earthdata.nasa.gov"
    cmr_client_id: str = "cmr-stac-api-proxy"
    cmr_timeout: Optional[float] = None
    cmr_stac_relative_root_url: str = "/stac"
    browse_path: Optional[str] = None
    stac_version: str = STAC_VERSION
    stac_item_limit: int = 10

    @property
    def cloud_only(self) -> bool:
        """Whether searches are restricted to cloud holding collections."""
        return self.cmr_stac_relative_root_url == CLOUD_STAC_ROOT

    @property
    def root_name(self) -> str:
        """Title of the root catalog."""
        return "CMR-CLOUDSTAC Root" if self.cloud_only else "CMR-STAC Root"

    @property
    def browse_template(self) -> Optional[List[str]]:
        """Browse path template split into its segment names."""
        if not self.browse_path:
            return None
        return [part for part in self.browse_path.strip("/").split("/") if part]

    def cmr_search_url(self, path: str) -> str:
        """Build a public CMR search url, e.g. for concept metadata links."""
        return f"{self.cmr_url.rstrip('/')}/search/{path.lstrip('/')}"

    @property
    def create_client(self) -> httpx.AsyncClient:
        """Create async CMR client."""
        logger.debug("Creating CMR client for %s", self.cmr_url)
        return httpx.AsyncClient(**_cmr_config(self))
