"""Link helpers."""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

import attr
from starlette.requests import Request
from stac_pydantic.links import Relations
from stac_pydantic.shared import MimeTypes


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@attr.s(frozen=True)
class PageContext:
    """Per request paging state.

    Attributes:
        root_url (str): Url of the API root, e.g. `http://host/stac`.
        url (str): Url of the current request including its query string.
        method (str): HTTP method of the current request.
        query_params (Tuple[Tuple[str, str], ...]): Query parameters in request order.
        body (Optional[dict]): JSON body of a POST request.
        page (int): Current page number, starting at 1.
        limit (int): Requested page size.
    """

    root_url: str = attr.ib(converter=lambda url: url.rstrip("/"))
    url: str = attr.ib()
    method: str = attr.ib(default="GET")
    query_params: Tuple[Tuple[str, str], ...] = attr.ib(default=(), converter=tuple)
    body: Optional[Dict[str, Any]] = attr.ib(default=None)
    page: int = attr.ib(default=1)
    limit: int = attr.ib(default=10)

    @classmethod
    def from_request(
        cls,
        request: Request,
        relative_root: str = "",
        body: Optional[Dict[str, Any]] = None,
        default_limit: int = 10,
    ) -> "PageContext":
        """Derive the paging state from a starlette request."""
        root_url = urljoin(str(request.base_url), relative_root.lstrip("/"))
        source: Dict[str, Any] = (
            body if body is not None else dict(request.query_params)
        )
        return cls(
            root_url=root_url,
            url=str(request.url),
            method=request.method,
            query_params=request.query_params.multi_items(),
            body=body,
            page=_positive_int(source.get("page"), 1),
            limit=_positive_int(source.get("limit"), default_limit),
        )

    @property
    def path_url(self) -> str:
        """The current url without its query string."""
        scheme, netloc, path, _, _ = urlsplit(self.url)
        return urlunsplit((scheme, netloc, path.rstrip("/"), "", ""))

    def app_url(self, path: str = "") -> str:
        """Url of `path` relative to the API root."""
        if not path:
            return self.root_url
        return f"{self.root_url}/{path.lstrip('/')}"

    def page_url(self, page: int) -> str:
        """The current url with its `page` query parameter set to `page`."""
        params = [(k, v) for k, v in self.query_params if k != "page"]
        params.append(("page", str(page)))
        scheme, netloc, path, _, _ = urlsplit(self.url)
        return urlunsplit((scheme, netloc, path, urlencode(params), ""))


def create_link(
    rel: str, href: str, title: Optional[str] = None, type: str = MimeTypes.json.value
) -> Dict[str, Any]:
    """Build a link object."""
    link = {"rel": rel, "href": href, "type": type}
    if title:
        link["title"] = title
    return link


@attr.s
class BaseLinks:
    """Create self and root links for a document."""

    context: PageContext = attr.ib()
    self_title: Optional[str] = attr.ib(default=None, kw_only=True)
    root_title: Optional[str] = attr.ib(default=None, kw_only=True)

    def link_self(self) -> Dict[str, Any]:
        """Return the self link."""
        return create_link(Relations.self.value, self.context.url, self.self_title)

    def link_root(self) -> Dict[str, Any]:
        """Return the root link."""
        return create_link(
            Relations.root.value, self.context.app_url(), self.root_title
        )

    def create_links(self) -> List[Dict[str, Any]]:
        """Return self and root links."""
        return [self.link_self(), self.link_root()]


@attr.s
class PagingLinks(BaseLinks):
    """Create self, root, prev and next links for a page of results.

    `next` is advertised whenever the page is full, so a result count that is
    an exact multiple of the page size ends with one empty trailing page.
    """

    result_count: int = attr.ib(kw_only=True)
    page_size: int = attr.ib(kw_only=True)
    media_type: str = attr.ib(default=MimeTypes.json.value, kw_only=True)

    def _page_link(self, rel: str, page: int) -> Dict[str, Any]:
        if self.context.method == "POST":
            return {
                "rel": rel,
                "type": self.media_type,
                "method": "POST",
                "href": self.context.path_url,
                "body": {**(self.context.body or {}), "page": page},
                "merge": False,
            }
        return {"rel": rel, "type": self.media_type, "href": self.context.page_url(page)}

    def link_prev(self, links: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Return the previous page link when there is a page before this one."""
        if self.context.page > 1 and len(links) > 1:
            return self._page_link(Relations.prev.value, self.context.page - 1)
        return None

    def link_next(self) -> Optional[Dict[str, Any]]:
        """Return the next page link when this page is full."""
        if self.result_count == self.page_size:
            return self._page_link(Relations.next.value, self.context.page + 1)
        return None

    def create_links(self) -> List[Dict[str, Any]]:
        """Return self, root and the applicable paging links."""
        links = super().create_links()
        prev_link = self.link_prev(links)
        if prev_link:
            links.append(prev_link)
        next_link = self.link_next()
        if next_link:
            links.append(next_link)
        return links


def build_links(
    context: PageContext,
    result_count: int,
    page_size: int,
    media_type: str = MimeTypes.json.value,
    self_title: Optional[str] = None,
    root_title: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Build the self, root, prev and next links of a page of results."""
    return PagingLinks(
        context,
        self_title=self_title,
        root_title=root_title,
        result_count=result_count,
        page_size=page_size,
        media_type=media_type,
    ).create_links()
