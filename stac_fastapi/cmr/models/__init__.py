"""STAC models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from stac_pydantic.links import Relations
from stac_pydantic.shared import MimeTypes


class CatalogNode(BaseModel):
    """STAC Catalog model for the date partitioned browse hierarchy.

    A node holds exactly one `self` and one `root` link, and lists either
    `child` catalogs or `item` links, never both.
    """

    type: str = "Catalog"
    stac_version: str
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    links: List[Dict[str, Any]] = Field(default_factory=list)

    def _set_unique(self, rel: str, href: str, title: Optional[str] = None) -> None:
        self.links = [link for link in self.links if link["rel"] != rel]
        link = {"rel": rel, "href": href, "type": MimeTypes.json.value}
        if title:
            link["title"] = title
        self.links.append(link)

    def rels(self, rel: str) -> List[Dict[str, Any]]:
        """Links with the given relation."""
        return [link for link in self.links if link["rel"] == rel]

    def create_root(self, href: str) -> None:
        """Set the root link."""
        self._set_unique(Relations.root.value, href, "Root catalog")

    def create_self(self, href: str) -> None:
        """Set the self link."""
        self._set_unique(Relations.self.value, href, self.title)

    def create_parent(self, href: str) -> None:
        """Set the parent link."""
        self._set_unique(Relations.parent.value, href, "Parent catalog")

    def add_child(self, title: str, href: str) -> None:
        """Link a sub-catalog."""
        if self.rels("item"):
            raise ValueError(f"Catalog [{self.id}] already lists items")
        self.links.append(
            {
                "rel": Relations.child.value,
                "href": href,
                "type": MimeTypes.json.value,
                "title": title,
            }
        )

    def add_item(self, title: str, href: str) -> None:
        """Link an item."""
        if self.rels(Relations.child.value):
            raise ValueError(f"Catalog [{self.id}] already lists child catalogs")
        self.links.append(
            {
                "rel": "item",
                "href": href,
                "type": MimeTypes.geojson.value,
                "title": title,
            }
        )
