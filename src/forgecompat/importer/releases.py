"""Engine release sync from a GitHub-style releases feed.

Fetches the engine's published releases, keeps the stable ones whose tag
cleans to a semantic version, and upserts them into the catalog through the
repository, so the usual engine version events (and the full rescan they
trigger) follow. The sentinel ``0.0.0`` row is created when missing, and
every catalog entry's display color is recomputed against the newest
release.

HTTP uses ``httpx``, imported lazily so the rest of the package works
without it. Install it with ``pip install forgecompat[registry]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from forgecompat import __version__
from forgecompat.core.catalog.catalog import detect_color_class
from forgecompat.core.store.models import SENTINEL_VERSION, EngineVersion
from forgecompat.core.store.repository import Repository
from forgecompat.core.versioning.semver import SemanticVersion, clean_engine_tag

logger = logging.getLogger(__name__)

# Timeout for release feed requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

USER_AGENT: str = f"forgecompat/{__version__}"


def _ensure_httpx() -> Any:  # noqa: ANN401
    """Lazily import httpx and raise a friendly error if missing.

    Raises:
        SystemExit: If httpx is not installed.
    """
    try:
        import httpx

        return httpx
    except ImportError:
        raise SystemExit(
            "httpx is required to sync engine releases.\n"
            "Install it with: pip install forgecompat[registry]"
        )


@dataclass(frozen=True)
class EngineRelease:
    """A stable engine release.

    Attributes:
        version: Cleaned semantic version string.
        published_at: Release publication time (UTC), if the feed had one.
        link: Release page URL.
    """

    version: str
    published_at: datetime | None = None
    link: str = ""


@dataclass
class SyncResult:
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated)


async def fetch_engine_releases(
    url: str,
    token: str | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[dict[str, Any]]:
    """Fetch the raw release records from *url*.

    Args:
        url: Releases endpoint (GitHub releases API shape).
        token: Optional bearer token.
        timeout: Request timeout in seconds.

    Returns:
        The decoded JSON list. Empty on HTTP errors, timeouts or a payload
        that is not a list.
    """
    httpx = _ensure_httpx()
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers=headers,
            follow_redirects=True,
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()
    except httpx.TimeoutException:
        logger.warning("Timeout fetching %s", url)
        return []
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        return []
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        return []
    if not isinstance(data, list):
        logger.warning("Unexpected releases payload from %s: %s", url, type(data).__name__)
        return []
    return data


def _parse_published(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_releases(payload: list[dict[str, Any]]) -> list[EngineRelease]:
    """Keep stable releases whose tag cleans to a semantic version.

    Drafts and pre-releases are dropped. Unparseable tags are logged and
    skipped. The result is sorted ascending by version and de-duplicated.
    """
    releases: dict[str, tuple[SemanticVersion, EngineRelease]] = {}
    for record in payload:
        if not isinstance(record, dict):
            continue
        if record.get("draft") or record.get("prerelease"):
            continue
        tag = str(record.get("tag_name") or "")
        try:
            version = clean_engine_tag(tag)
        except ValueError as exc:
            logger.warning("Invalid engine version format from release %r: %s", tag, exc)
            continue
        key = str(version)
        releases.setdefault(key, (version, EngineRelease(
            version=key,
            published_at=_parse_published(record.get("published_at")),
            link=str(record.get("html_url") or ""),
        )))
    return [release for _, release in sorted(releases.values(), key=lambda pair: pair[0])]


def sync_catalog(
    store: Repository,
    releases: list[EngineRelease],
    now: datetime | None = None,
) -> SyncResult:
    """Upsert *releases* into the repository's engine versions.

    New versions are created with the release's publish date (or *now*).
    Existing versions keep their publish date; their link and color are
    refreshed. A version is only written when something differs.

    Returns:
        Which version strings were created and which were updated.
    """
    moment = now or datetime.now(timezone.utc)
    result = SyncResult()
    latest = releases[-1].version if releases else None
    with store.transaction():
        existing = {ev.version: ev for ev in store.list_engine_versions()}
        next_id = max((ev.id for ev in existing.values()), default=0) + 1

        if SENTINEL_VERSION not in existing:
            sentinel = EngineVersion(id=next_id, version=SENTINEL_VERSION, color_class="gray")
            existing[SENTINEL_VERSION] = store.save_engine_version(sentinel)
            result.created.append(SENTINEL_VERSION)
            next_id += 1

        for release in releases:
            current = existing.get(release.version)
            if current is None:
                created = store.save_engine_version(EngineVersion(
                    id=next_id,
                    version=release.version,
                    publish_date=release.published_at or moment,
                    link=release.link,
                    color_class=detect_color_class(release.version, latest),
                ))
                existing[created.version] = created
                result.created.append(created.version)
                next_id += 1
            elif release.link and current.link != release.link:
                existing[current.version] = replace(current, link=release.link)

        if latest is not None:
            for version, ev in sorted(existing.items()):
                desired = replace(ev, color_class=detect_color_class(version, latest))
                stored = store.get_engine_version(ev.id)
                if desired != stored:
                    store.save_engine_version(desired)
                    if version not in result.created:
                        result.updated.append(version)

    logger.info(
        "Engine release sync: %d created, %d updated", len(result.created), len(result.updated)
    )
    return result
