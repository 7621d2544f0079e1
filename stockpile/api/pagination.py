# stockpile/api/pagination.py
"""
Limit/offset pagination for list endpoints.

``limit`` and ``offset`` come from the query string. Paginated responses carry
``first``/``previous``/``next``/``last`` links both in an RFC 5988 ``Link``
header and in the body's ``_links`` object.
"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from fastapi import Request, Response

from stockpile.core.errors import BadRequestError
from stockpile.db.query import QuerySpec
from stockpile.db.repository import Repository


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int = 0


def _integer(name: str, raw: str, minimum: int = 0) -> int:
    kind = "positive" if minimum > 0 else "non-negative"
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequestError(f"{name} must be a {kind} integer") from None
    if value < minimum:
        raise BadRequestError(f"{name} must be a {kind} integer")
    return value


def parse_page(params: Mapping[str, str], max_limit: int) -> Optional[Page]:
    """Read ``limit``/``offset``; ``None`` when the request is unpaginated.

    ``limit`` must be at least 1 and is capped at ``max_limit``; an
    ``offset`` without a ``limit`` pages by ``max_limit``.
    """
    raw_limit = params.get("limit")
    raw_offset = params.get("offset")
    if raw_limit is None and raw_offset is None:
        return None
    limit = _integer("limit", raw_limit, minimum=1) if raw_limit is not None else max_limit
    offset = _integer("offset", raw_offset) if raw_offset is not None else 0
    return Page(limit=min(limit, max_limit), offset=offset)


def create_links(path: str, limit: int, offset: int = 0, total: int = 0) -> Dict[str, str]:
    """Navigation links for a page of ``total`` rows.

    ``previous`` appears on any page past the first and ``next`` only while
    rows remain beyond ``offset + limit``. ``limit`` must be positive.
    """
    links = {}
    base = f"{path}?limit={limit}&offset="

    links["first"] = f"{base}0"

    if offset > 0:
        links["previous"] = f"{base}{max(0, offset - limit)}"

    if offset + limit < total:
        links["next"] = f"{base}{offset + limit}"

    # An exact multiple puts the last page at total - limit, not at total
    remainder = total % limit
    last_page_diff = remainder or limit
    links["last"] = f"{base}{max(0, total - last_page_diff)}"

    return links


def format_link_header(links: Dict[str, str]) -> str:
    return ", ".join(f'<{url}>; rel="{rel}"' for rel, url in links.items())


async def add_links(
    request: Request,
    response: Response,
    repository: Repository,
    organization_id: Optional[int],
    spec: QuerySpec,
    page: Page,
) -> Dict[str, str]:
    """Count matching rows and attach navigation links to ``response``."""
    total = await repository.count_rows(organization_id, spec)
    links = create_links(request.url.path, page.limit, page.offset, total)
    response.headers["Link"] = format_link_header(links)
    return links
