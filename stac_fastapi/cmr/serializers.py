"""Serializers."""

import abc
from typing import Any, Dict, List, Optional, Tuple

import attr
from stac_pydantic.links import Relations
from stac_pydantic.shared import MimeTypes

from stac_fastapi.cmr.config import CmrSettings
from stac_fastapi.cmr.database_logic import cmr_collection_to_stac_id
from stac_fastapi.cmr.datetime_utils import cmr_time_to_str
from stac_fastapi.cmr.models.links import PageContext, create_link
from stac_fastapi.types import stac as stac_types

GLOBAL_BBOX = [-180.0, -90.0, 180.0, 90.0]
EO_EXTENSION = "https://stac-extensions.github.io/eo/v1.1.0/schema.json"

# CMR link relations, matched on their suffix.
DATA_REL = "/data#"
BROWSE_REL = "/browse#"
METADATA_RELS = ("/metadata#", "/documentation#")

Position = List[float]


def _floats(text: str) -> List[float]:
    return [float(v) for v in text.split()]


def _lat_lon_positions(text: str) -> List[Position]:
    """CMR writes `lat lon lat lon ...`, GeoJSON wants `[lon, lat]`."""
    values = _floats(text)
    return [[values[i + 1], values[i]] for i in range(0, len(values) - 1, 2)]


def _box_to_bbox(text: str) -> List[float]:
    """CMR boxes are `S W N E`."""
    south, west, north, east = _floats(text)
    return [west, south, east, north]


def _bbox_polygon(bbox: List[float]) -> List[List[Position]]:
    west, south, east, north = bbox
    return [
        [[west, south], [east, south], [east, north], [west, north], [west, south]]
    ]


def _single_or_multi(kind: str, coordinates: List[Any]) -> Dict[str, Any]:
    if len(coordinates) == 1:
        return {"type": kind, "coordinates": coordinates[0]}
    return {"type": f"Multi{kind}", "coordinates": coordinates}


def _flatten(coordinates: Any) -> List[Position]:
    if coordinates and isinstance(coordinates[0], (int, float)):
        return [coordinates]
    positions: List[Position] = []
    for part in coordinates:
        positions.extend(_flatten(part))
    return positions


def geometry_bbox(geometry: Dict[str, Any]) -> List[float]:
    """Bounding box `[w, s, e, n]` of a GeoJSON geometry."""
    positions = _flatten(geometry["coordinates"])
    lons = [p[0] for p in positions]
    lats = [p[1] for p in positions]
    return [min(lons), min(lats), max(lons), max(lats)]


def cmr_spatial_to_geometry(
    record: Dict[str, Any],
) -> Tuple[Optional[Dict[str, Any]], Optional[List[float]]]:
    """Convert the spatial fields of a CMR JSON record into GeoJSON.

    `polygons` win over `boxes`, `points` and `lines`, in that order.

    Returns:
        The geometry and its bbox, both None when the record has no spatial data.
    """
    if record.get("polygons"):
        polygons = [
            [_lat_lon_positions(ring) for ring in polygon]
            for polygon in record["polygons"]
        ]
        geometry = _single_or_multi("Polygon", polygons)
        return geometry, geometry_bbox(geometry)

    if record.get("boxes"):
        boxes = [_box_to_bbox(box) for box in record["boxes"]]
        geometry = _single_or_multi("Polygon", [_bbox_polygon(b) for b in boxes])
        bbox = [
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        ]
        return geometry, bbox

    if record.get("points"):
        points = [_lat_lon_positions(point)[0] for point in record["points"]]
        geometry = _single_or_multi("Point", points)
        return geometry, geometry_bbox(geometry)

    if record.get("lines"):
        lines = [_lat_lon_positions(line) for line in record["lines"]]
        geometry = _single_or_multi("LineString", lines)
        return geometry, geometry_bbox(geometry)

    return None, None


def _asset(link: Dict[str, Any], roles: List[str]) -> Dict[str, Any]:
    asset = {"href": link["href"], "roles": roles}
    if link.get("title"):
        asset["title"] = link["title"]
    if link.get("type"):
        asset["type"] = link["type"]
    return asset


def cmr_links_to_assets(links: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Build STAC assets out of the non inherited links of a CMR granule."""
    assets: Dict[str, Dict[str, Any]] = {}
    counts: Dict[str, int] = {}

    def add(key: str, asset: Dict[str, Any]) -> None:
        counts[key] = counts.get(key, 0) + 1
        assets[key if counts[key] == 1 else f"{key}_{counts[key] - 1}"] = asset

    for link in links or []:
        rel = link.get("rel", "")
        if link.get("inherited") or not link.get("href"):
            continue
        if rel.endswith(DATA_REL):
            add("data", _asset(link, ["data"]))
        elif rel.endswith(BROWSE_REL):
            add("browse", _asset(link, ["thumbnail", "overview"]))
        elif rel.endswith(METADATA_RELS):
            add("metadata", _asset(link, ["metadata"]))
    return assets


@attr.s
class Serializer(abc.ABC):
    """Defines serialization methods from CMR JSON records to STAC documents.

    This class is meant to be subclassed and implemented by specific serializers for different STAC objects (e.g. Item, Collection).
    """

    settings: CmrSettings = attr.ib(factory=CmrSettings)

    @abc.abstractmethod
    def cmr_to_stac(
        self, record: Dict[str, Any], context: PageContext, provider_id: str, **kwargs
    ) -> Any:
        """Transform a CMR record to a STAC object.

        Arguments:
            record (dict): A CMR JSON feed entry.
            context (PageContext): The request the document is built for.
            provider_id (str): The provider the record belongs to.

        Returns:
            Any: A STAC object, e.g. an `Item` or `Collection`, representing the input `record`.
        """
        ...

    def _concept_links(self, concept_id: str) -> List[Dict[str, Any]]:
        return [
            create_link(
                "about",
                self.settings.cmr_search_url(f"concepts/{concept_id}.html"),
                "HTML metadata",
                MimeTypes.html.value,
            ),
            create_link(
                "via",
                self.settings.cmr_search_url(f"concepts/{concept_id}.json"),
                "CMR JSON metadata",
            ),
        ]


@attr.s
class CollectionSerializer(Serializer):
    """Serialization methods for STAC collections."""

    @staticmethod
    def stac_id(record: Dict[str, Any]) -> str:
        """The STAC collection id of a CMR collection, `<short_name>.v<version>`."""
        return cmr_collection_to_stac_id(
            record.get("short_name", record.get("id", "")), record.get("version_id")
        )

    def cmr_to_stac(
        self, record: Dict[str, Any], context: PageContext, provider_id: str, **kwargs
    ) -> stac_types.Collection:
        """Transform a CMR collection to a STAC collection.

        Args:
            record (dict): The CMR JSON collection entry.
            context (PageContext): The request the collection is served for.
            provider_id (str): The provider holding the collection.

        Returns:
            stac_types.Collection: The STAC collection object.
        """
        collection_id = self.stac_id(record)
        path = f"/{provider_id}/collections/{collection_id}"

        boxes = [_box_to_bbox(box) for box in record.get("boxes") or []]
        links = [
            create_link(Relations.self.value, context.app_url(path), "Info about this collection"),
            create_link(Relations.root.value, context.app_url(), self.settings.root_name),
            create_link(
                Relations.parent.value, context.app_url(f"/{provider_id}"), "Parent catalog"
            ),
            create_link(
                Relations.items.value,
                context.app_url(f"{path}/items"),
                "Granules in this collection",
                MimeTypes.geojson.value,
            ),
            *self._concept_links(record["id"]),
        ]

        collection = stac_types.Collection(
            type="Collection",
            stac_version=self.settings.stac_version,
            stac_extensions=[],
            id=collection_id,
            title=record.get("dataset_id") or record.get("title") or collection_id,
            description=record.get("summary") or "",
            keywords=[],
            license="not-provided",
            extent={
                "spatial": {"bbox": boxes or [GLOBAL_BBOX]},
                "temporal": {
                    "interval": [
                        [
                            cmr_time_to_str(record.get("time_start")),
                            cmr_time_to_str(record.get("time_end")),
                        ]
                    ]
                },
            },
            links=links,
        )
        if record.get("data_center"):
            collection["providers"] = [
                {"name": record["data_center"], "roles": ["producer"]}
            ]
        return collection


@attr.s
class ItemSerializer(Serializer):
    """Serialization methods for STAC items."""

    def cmr_to_stac(
        self,
        record: Dict[str, Any],
        context: PageContext,
        provider_id: str,
        collection_id: Optional[str] = None,
        **kwargs,
    ) -> stac_types.Item:
        """Transform a CMR granule to a STAC item.

        Args:
            record (dict): The CMR JSON granule entry.
            context (PageContext): The request the item is served for.
            provider_id (str): The provider holding the granule.
            collection_id (Optional[str]): STAC id of the granule's collection. The
                CMR collection concept id is used when not given.

        Returns:
            stac_types.Item: The STAC item object.
        """
        item_id = record["id"]
        collection_id = collection_id or record.get("collection_concept_id", "")
        collection_url = context.app_url(f"/{provider_id}/collections/{collection_id}")

        geometry, bbox = cmr_spatial_to_geometry(record)
        start = cmr_time_to_str(record.get("time_start"))
        end = cmr_time_to_str(record.get("time_end")) or start

        properties: Dict[str, Any] = {
            "datetime": start,
            "start_datetime": start,
            "end_datetime": end,
        }
        stac_extensions = []
        if record.get("cloud_cover") is not None:
            properties["eo:cloud_cover"] = float(record["cloud_cover"])
            stac_extensions.append(EO_EXTENSION)

        links = [
            create_link(
                Relations.self.value,
                f"{collection_url}/items/{item_id}",
                type=MimeTypes.geojson.value,
            ),
            create_link(Relations.parent.value, collection_url),
            create_link(Relations.collection.value, collection_url),
            create_link(Relations.root.value, context.app_url(), self.settings.root_name),
            create_link("provider", context.app_url(f"/{provider_id}")),
            self._concept_links(item_id)[1],
        ]

        return stac_types.Item(
            type="Feature",
            stac_version=self.settings.stac_version,
            stac_extensions=stac_extensions,
            id=item_id,
            collection=collection_id,
            geometry=geometry,
            bbox=bbox,
            properties=properties,
            links=links,
            assets=cmr_links_to_assets(record.get("links", [])),
        )
