"""Date partitioned browse catalogs."""

import logging
import re
from typing import List, Sequence

import attr

from stac_fastapi.cmr.exceptions import TranslationError
from stac_fastapi.cmr.models import CatalogNode
from stac_fastapi.cmr.models.links import PageContext
from stac_fastapi.cmr.models.native import TemporalFacets

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = ("year", "month", "day")

SEGMENT_PATTERNS = {
    "year": re.compile(r"\d{4}"),
    "month": re.compile(r"0[1-9]|1[0-2]"),
    "day": re.compile(r"0[1-9]|[12]\d|3[01]"),
}


@attr.s
class BrowseCatalogBuilder:
    """Build the year, month and day catalogs below a collection.

    Attributes:
        browse_template (Sequence[str]): Names of the date path segments, e.g. `("year", "month", "day")`.
        stac_version (str): STAC version written into every catalog.
    """

    browse_template: Sequence[str] = attr.ib(default=DEFAULT_TEMPLATE, converter=tuple)
    stac_version: str = attr.ib(default="1.0.0")

    def browse_params(self, date_segments: Sequence[str]) -> dict:
        """Name the date path segments after the browse template.

        Raises:
            TranslationError: If there are no segments, more than the template
                allows, or a year, month or day segment is not a valid date part.
        """
        segments = [s for s in date_segments if s]
        if not segments:
            raise TranslationError("Browse path needs at least one date segment")
        if len(segments) > len(self.browse_template):
            raise TranslationError(
                f"Browse path [{'/'.join(segments)}] is deeper than "
                f"[{'/'.join(self.browse_template)}]"
            )
        params = dict(zip(self.browse_template, segments))
        for name, value in params.items():
            pattern = SEGMENT_PATTERNS.get(name)
            if pattern and not pattern.fullmatch(value):
                raise TranslationError(f"Invalid browse {name} [{value}]")
        logger.debug("Browse parameters: %s", params)
        return params

    def build_catalog(
        self,
        provider_id: str,
        collection_id: str,
        date_segments: Sequence[str],
        facets: TemporalFacets,
        context: PageContext,
    ) -> CatalogNode:
        """Build the catalog for one node of the date hierarchy.

        A year node links a child per month, a month node a child per day and
        a day node an item per granule.
        """
        params = self.browse_params(date_segments)
        segments: List[str] = list(params.values())
        date = "-".join(segments)

        catalog = CatalogNode(
            stac_version=self.stac_version,
            id=f"{collection_id}-{date}",
            title=f"{collection_id} {date}",
            description=f"{provider_id} sub-catalog for {date}",
        )

        self_url = context.app_url(
            f"/{provider_id}/collections/{collection_id}/{'/'.join(segments)}"
        )
        catalog.create_root(context.app_url())
        catalog.create_self(self_url)
        catalog.create_parent(self_url.rsplit("/", 1)[0])

        year, month, day = params.get("year"), params.get("month"), params.get("day")
        if day:
            for item_id in facets.itemids:
                catalog.add_item(
                    item_id,
                    context.app_url(
                        f"/{provider_id}/collections/{collection_id}/items/{item_id}"
                    ),
                )
        elif month:
            for d in facets.days:
                catalog.add_child(f"{year}-{month}-{d} catalog", f"{self_url}/{d}")
        elif year:
            for m in facets.months:
                catalog.add_child(f"{year}-{m} catalog", f"{self_url}/{m}")

        return catalog
