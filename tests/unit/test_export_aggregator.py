"""Unit tests for the bulk export aggregator."""

import json

import pytest

from regenlock.models.config import ExportConfig
from regenlock.models.generator import GeneratedItem, GeneratorOutput
from regenlock.services.artifact_fetcher import FetchedArtifact
from regenlock.services.exceptions import ExportManifestError
from regenlock.services.export_aggregator import ExportAggregator, artifact_url, display_name
from regenlock.services.file_operations import DirectoryEmitter
from regenlock.services.version_store import create_version


def make_version(id_factory, clock, count=5, with_images=True):
    output = GeneratorOutput(items=[
        GeneratedItem(
            key=f"logos.{i}",
            title=f"Concept {i + 1}",
            text=f"Concept {chr(ord('A') + i)}",
            attributes={"image_url": f"https://cdn.test/logo-{i}.png"} if with_images else {},
        )
        for i in range(count)
    ])
    return create_version({"businessName": "Ocala Spa"}, output, id_factory=id_factory, clock=clock)


def read_manifest(out_dir):
    manifests = list(out_dir.glob("*_Manifest_*.json"))
    assert len(manifests) == 1
    return json.loads(manifests[0].read_text())


class TestExportRun:
    """Tests for ExportAggregator.run."""

    @pytest.mark.asyncio
    async def test_one_fetch_failure_is_recorded(self, tmp_path, id_factory, clock, make_fetcher, instant_sleep):
        """Test 5 items where the third item's fetch fails."""
        version = make_version(id_factory, clock)
        fetcher = make_fetcher(failing_urls={"https://cdn.test/logo-2.png"})
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fetcher, clock=clock, sleep=instant_sleep)

        summary = await aggregator.run(version)

        manifest = read_manifest(tmp_path)
        assert len(manifest["failures"]) == 1
        assert manifest["failures"][0]["item_id"] == version.items[2].id
        assert manifest["failures"][0]["reason"]
        assert summary.success_count + summary.failure_count == 5
        assert summary.failure_count == 1
        assert len(fetcher.requested) == 5

    @pytest.mark.asyncio
    async def test_files_written_per_item(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test text, sidecar and image files for each item."""
        version = make_version(id_factory, clock, count=1)
        item = version.items[0]
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        summary = await aggregator.run(version)

        base = f"concept-a-{item.id[-6:]}"
        assert (tmp_path / f"{base}.txt").read_text() == "Concept A"
        sidecar = json.loads((tmp_path / f"{base}.json").read_text())
        assert sidecar["id"] == item.id
        assert sidecar["version_id"] == version.id
        assert (tmp_path / f"{base}.png").read_bytes() == b"\x89PNG fake"
        assert summary.manifest_name == "Regenlock_Export_Manifest_2025-03-01.json"

    @pytest.mark.asyncio
    async def test_effective_text_is_exported(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test that user edits, not generated text, are exported."""
        version = make_version(id_factory, clock, count=1)
        edited_item = version.items[0].model_copy(update={"edited": "Sunset Logo"})
        version = version.model_copy(update={"items": (edited_item,)})
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        await aggregator.run(version)

        assert (tmp_path / f"sunset-logo-{edited_item.id[-6:]}.txt").read_text() == "Sunset Logo"
        assert read_manifest(tmp_path)["items"][0]["edited"] is True

    @pytest.mark.asyncio
    async def test_selection_limits_items(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test exporting a subset."""
        version = make_version(id_factory, clock)
        selection = {version.items[1].id, version.items[4].id}
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        summary = await aggregator.run(version, selection)

        assert summary.total == 2
        assert [entry["id"] for entry in read_manifest(tmp_path)["items"]] == [
            version.items[1].id, version.items[4].id,
        ]

    @pytest.mark.asyncio
    async def test_missing_image_ok_by_default(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test that items without an image are not failures unless required."""
        version = make_version(id_factory, clock, count=2, with_images=False)
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        summary = await aggregator.run(version)

        assert summary.failure_count == 0
        assert fake_fetcher.requested == []

    @pytest.mark.asyncio
    async def test_missing_image_fails_when_required(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test require_artifact."""
        version = make_version(id_factory, clock, count=2, with_images=False)
        aggregator = ExportAggregator(
            DirectoryEmitter(tmp_path),
            fetcher=fake_fetcher,
            config=ExportConfig(require_artifact=True),
            clock=clock,
            sleep=instant_sleep,
        )

        summary = await aggregator.run(version)

        assert summary.failure_count == 2
        assert {f.reason for f in summary.failures} == {"missing imageUrl"}

    @pytest.mark.asyncio
    async def test_write_failure_recorded(self, id_factory, clock, fake_fetcher, instant_sleep):
        """Test that an emitter error on one item does not stop the batch."""
        written = []

        class FlakyEmitter:
            def emit(self, filename, content):
                if filename.startswith("concept-b"):
                    raise OSError("read-only file system")
                written.append(filename)

        version = make_version(id_factory, clock, count=3)
        aggregator = ExportAggregator(FlakyEmitter(), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        summary = await aggregator.run(version)

        assert summary.failure_count == 1
        assert summary.failures[0].reason == "content write failed"
        assert summary.success_count == 2
        assert written[-1] == summary.manifest_name

    @pytest.mark.asyncio
    async def test_manifest_write_failure_keeps_summary(self, id_factory, clock, make_fetcher, instant_sleep):
        """Test that a failed manifest write still hands back the collected failures."""

        class NoManifestEmitter:
            def emit(self, filename, content):
                if "_Manifest_" in filename:
                    raise OSError("disk full")

        version = make_version(id_factory, clock, count=3)
        fetcher = make_fetcher(failing_urls={"https://cdn.test/logo-1.png"})
        aggregator = ExportAggregator(NoManifestEmitter(), fetcher=fetcher, clock=clock, sleep=instant_sleep)

        with pytest.raises(ExportManifestError) as exc_info:
            await aggregator.run(version)

        summary = exc_info.value.summary
        assert summary.failure_count == 1
        assert summary.failures[0].item_id == version.items[1].id
        assert summary.success_count == 2
        assert exc_info.value.reason == "disk full"
        assert aggregator.running is False

    @pytest.mark.asyncio
    async def test_progress_reported(self, tmp_path, id_factory, clock, fake_fetcher, instant_sleep):
        """Test progress callbacks from 0 to total."""
        version = make_version(id_factory, clock, count=3)
        progress = []
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=instant_sleep)

        await aggregator.run(version, on_progress=lambda p: progress.append((p.current, p.total)))

        assert progress == [(0, 3), (1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_pauses_between_steps(self, tmp_path, id_factory, clock, fake_fetcher):
        """Test that the configured delay is applied between steps."""
        pauses = []

        async def record_sleep(seconds):
            pauses.append(seconds)

        version = make_version(id_factory, clock, count=2)
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fake_fetcher, clock=clock, sleep=record_sleep)

        await aggregator.run(version)

        assert pauses
        assert set(pauses) == {0.2}

    @pytest.mark.asyncio
    async def test_no_pauses_when_delay_zero(self, tmp_path, id_factory, clock, fake_fetcher):
        """Test disabling the delay."""
        pauses = []

        async def record_sleep(seconds):
            pauses.append(seconds)

        version = make_version(id_factory, clock, count=2)
        aggregator = ExportAggregator(
            DirectoryEmitter(tmp_path),
            fetcher=fake_fetcher,
            config=ExportConfig(inter_step_delay_ms=0),
            clock=clock,
            sleep=record_sleep,
        )

        await aggregator.run(version)

        assert pauses == []

    @pytest.mark.asyncio
    async def test_cancel_skips_remaining_items(self, tmp_path, id_factory, clock, instant_sleep):
        """Test that cancel lets the item in flight finish and skips the rest."""
        version = make_version(id_factory, clock, count=3)

        class CancellingFetcher:
            aggregator = None

            async def fetch(self, url):
                self.aggregator.cancel()
                return FetchedArtifact(content=b"png", content_type="image/png")

        fetcher = CancellingFetcher()
        aggregator = ExportAggregator(DirectoryEmitter(tmp_path), fetcher=fetcher, clock=clock, sleep=instant_sleep)
        fetcher.aggregator = aggregator

        summary = await aggregator.run(version)

        assert summary.cancelled is True
        assert summary.success_count == 1
        assert summary.skipped_count == 2
        assert read_manifest(tmp_path)["skipped"] == [version.items[1].id, version.items[2].id]
        assert aggregator.running is False


class TestHelpers:
    """Tests for naming helpers."""

    def test_display_name_prefers_short_effective_text(self, logo_versions):
        """Test name-like effective text."""
        assert display_name(logo_versions[0].items[0]) == "Sunrise Mark"

    def test_display_name_falls_back_to_title(self, logo_versions):
        """Test long body text falls back to the slot title."""
        item = logo_versions[0].items[0].model_copy(update={"generated": "word " * 30})

        assert display_name(item) == "Concept 1"

    def test_artifact_url_accepts_camel_case(self, logo_versions):
        """Test both attribute spellings."""
        item = logo_versions[0].items[0]
        camel = item.model_copy(update={"attributes": {"imageUrl": "https://cdn.test/x.png"}})

        assert artifact_url(item) == "https://cdn.example.com/logo-0.png"
        assert artifact_url(camel) == "https://cdn.test/x.png"
