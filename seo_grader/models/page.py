"""The fetched page shared read-only by every analyzer of one audit."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class SubResource:
    """A stylesheet, script or image referenced by the page."""

    tag: str
    url: str
    size: int = 0
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag, "url": self.url, "size": self.size, "type": self.type}


@dataclass(frozen=True)
class PageTiming:
    """Coarse wall-clock timings of the page fetch, in seconds."""

    server_response: float = 0.0
    all_content: float = 0.0
    all_scripts: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "server_response": self.server_response,
            "all_content": self.all_content,
            "all_scripts": self.all_scripts,
        }


def _freeze_headers(headers: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType({str(k).lower(): str(v) for k, v in (headers or {}).items()})


@dataclass(frozen=True, eq=False)
class ParsedPage:
    """One fetched document plus its metadata.

    Analyzers must treat ``soup`` as read-only; anything that needs to strip
    elements parses ``html`` again.  Header names are stored lower-cased,
    use :meth:`header` for case-insensitive lookups.
    """

    url: str
    html: str
    soup: BeautifulSoup
    headers: Mapping[str, str] = field(default_factory=dict)
    resources: tuple[SubResource, ...] = ()
    timing: PageTiming = field(default_factory=PageTiming)
    requested_url: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze_headers(self.headers))
        object.__setattr__(self, "resources", tuple(self.resources))

    @classmethod
    def from_html(
        cls,
        url: str,
        html: str,
        headers: Optional[Mapping[str, str]] = None,
        resources: Optional[list[SubResource]] = None,
        timing: Optional[PageTiming] = None,
    ) -> "ParsedPage":
        """Build a page from raw markup (used by the fetcher and in tests)."""
        return cls(
            url=url,
            html=html,
            soup=BeautifulSoup(html or "", "html.parser"),
            headers=headers or {},
            resources=tuple(resources or ()),
            timing=timing or PageTiming(),
            requested_url=url,
        )

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @property
    def is_https(self) -> bool:
        return self.url.lower().startswith("https://")
