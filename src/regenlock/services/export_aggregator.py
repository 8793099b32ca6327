"""Bulk export of a version's effective content.

Items are exported through a serialized queue with a fixed pause between
steps so the artifact-fetch channel is never flooded. Each item can fail
on its own; failures are recorded and the queue keeps going. The manifest
is always written last.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from regenlock.models.config import ExportConfig
from regenlock.models.export import ExportFailure, ExportManifest, ExportProgress, ExportSummary
from regenlock.models.version_set import ContentItem, VersionSet
from regenlock.services.artifact_fetcher import HttpArtifactFetcher
from regenlock.services.exceptions import ArtifactFetchError, ExportManifestError
from regenlock.services.file_operations import ArtifactEmitter, safe_filename_base
from regenlock.services.version_store import resolve_selection
from regenlock.utils.ids import Clock, utc_now
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

ProgressCallback = Callable[[ExportProgress], None]


def display_name(item: ContentItem) -> str:
    """Short name for file names and the manifest (the effective text when it is name-like)."""
    text = item.effective.strip()
    if text and len(text) <= 60 and "\n" not in text:
        return text
    return item.title or item.key


def item_metadata(item: ContentItem, version: VersionSet) -> Dict[str, Any]:
    """Sidecar/manifest metadata for one item."""
    return {
        "id": item.id,
        "version_id": version.id,
        "key": item.key,
        "title": item.title,
        "name": display_name(item),
        "favorite": item.favorite,
        "edited": item.has_visible_edit,
        "edited_flags": dict(item.edited_flags),
        "attributes": dict(item.attributes),
    }


def artifact_url(item: ContentItem) -> Optional[str]:
    return item.attributes.get("image_url") or item.attributes.get("imageUrl") or None


class ExportAggregator:
    """
    Sequential exporter for one version at a time.

    Example:
        >>> aggregator = ExportAggregator(DirectoryEmitter(out_dir), config=ExportConfig())
        >>> summary = await aggregator.run(version)
        >>> print(summary.success_count, summary.failure_count)
    """

    def __init__(
        self,
        emitter: ArtifactEmitter,
        fetcher: Optional[Any] = None,
        config: Optional[ExportConfig] = None,
        clock: Clock = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or ExportConfig()
        self.emitter = emitter
        self.fetcher = fetcher or HttpArtifactFetcher(self.config.fetch_timeout_seconds)
        self._clock = clock
        self._sleep = sleep
        self._cancelled = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Stop enqueuing further items; the item in flight finishes normally."""
        if self._running:
            logger.info("export_cancel_requested")
        self._cancelled = True

    async def _pause(self) -> None:
        if self.config.inter_step_delay_ms:
            await self._sleep(self.config.inter_step_delay_ms / 1000)

    def _emit(self, filename: str, content) -> None:
        self.emitter.emit(filename, content)

    async def _export_item(self, item: ContentItem, version: VersionSet) -> Optional[ExportFailure]:
        name = display_name(item)
        base = f"{safe_filename_base(name)}-{item.id[-6:] or 'id'}"
        url = artifact_url(item)

        def failure(reason: str) -> ExportFailure:
            logger.warning("export_item_failed", item_id=item.id, reason=reason)
            return ExportFailure(item_id=item.id, name=name, image_url=url, reason=reason)

        try:
            self._emit(f"{base}.txt", item.effective)
            await self._pause()
            self._emit(f"{base}.json", json.dumps(item_metadata(item, version), indent=2, default=str))
            await self._pause()
        except (OSError, ValueError) as e:
            logger.error("export_write_failed", item_id=item.id, error=str(e))
            return failure("content write failed")

        if url is None:
            if self.config.require_artifact:
                return failure("missing imageUrl")
            return None

        try:
            artifact = await self.fetcher.fetch(url)
        except ArtifactFetchError as e:
            return failure(e.reason)

        try:
            self._emit(f"{base}.{artifact.extension}", artifact.content)
        except (OSError, ValueError) as e:
            logger.error("export_write_failed", item_id=item.id, error=str(e))
            return failure("image write failed")

        return None

    async def run(
        self,
        version: VersionSet,
        selection: Optional[Iterable[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportSummary:
        """
        Export the selected items of a version.

        Args:
            version: Active version set
            selection: Item ids to export (empty/None: every item)
            on_progress: Called with ExportProgress after each item

        Returns:
            ExportSummary derived from the written manifest

        Raises:
            ExportManifestError: If the manifest cannot be written; carries the
                summary of the items already processed
        """
        items = resolve_selection(version, selection)
        exported_at = self._clock()
        manifest_name = f"{self.config.manifest_prefix}_Manifest_{exported_at:%Y-%m-%d}.json"
        total = len(items)

        failures: List[ExportFailure] = []
        skipped: List[str] = []
        done = 0

        self._cancelled = False
        self._running = True
        logger.info("export_started", version_id=version.id, total=total)

        if on_progress:
            on_progress(ExportProgress(current=0, total=total))

        queue = iter(items)

        async def worker() -> None:
            nonlocal done
            for item in queue:
                if self._cancelled:
                    skipped.append(item.id)
                    continue
                failure = await self._export_item(item, version)
                if failure is not None:
                    failures.append(failure)
                done += 1
                if on_progress:
                    on_progress(ExportProgress(current=done, total=total))
                await self._pause()

        try:
            await asyncio.gather(*(worker() for _ in range(self.config.concurrency)))
        finally:
            self._running = False

        manifest = ExportManifest(
            exported_at=exported_at,
            version_id=version.id,
            count=total,
            items=[item_metadata(item, version) for item in items],
            failures=failures,
            skipped=skipped,
            cancelled=bool(skipped),
        )
        summary = ExportSummary.from_manifest(manifest, manifest_name)
        try:
            self._emit(manifest_name, manifest.to_json())
        except (OSError, ValueError) as e:
            logger.error(
                "export_manifest_failed",
                version_id=version.id,
                manifest=manifest_name,
                failure_count=summary.failure_count,
                error=str(e),
            )
            raise ExportManifestError(summary, str(e)) from e

        logger.info(
            "export_finished",
            version_id=version.id,
            total=summary.total,
            success_count=summary.success_count,
            failure_count=summary.failure_count,
            skipped_count=summary.skipped_count,
            manifest=manifest_name,
        )
        return summary
