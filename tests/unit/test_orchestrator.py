"""Unit tests for the Orchestrator run flows."""

from __future__ import annotations

import asyncio
import threading

import pytest

from releasecast.core.errors import (
    AcquisitionError,
    ArtifactRetrievalError,
    InputError,
    InvalidArtifactNameError,
    TaskError,
)
from releasecast.core.orchestrator import Orchestrator
from releasecast.core.task_registry import PublishPlan
from releasecast.models.runs import RunState
from releasecast.models.tasks import TaskEventType, ValidateTask

AMD = "grafana-9.5.0-amd64.tar.gz"
ARM = "grafana-9.5.0-arm64.tar.gz"


class _Calls:
    """Records action invocations and tracks peak concurrency."""

    def __init__(self) -> None:
        self.published: list[str] = []
        self.manifests: dict[str, list[str]] = {}
        self.running = 0
        self.peak = 0

    async def publish(self, artifact, tag):
        self.running += 1
        self.peak = max(self.peak, self.running)
        await asyncio.sleep(0.001)
        self.running -= 1
        self.published.append(tag)
        return f"pushed {tag}"

    async def aggregate(self, manifest, tags):
        self.running += 1
        self.peak = max(self.peak, self.running)
        await asyncio.sleep(0.001)
        self.running -= 1
        self.manifests[manifest] = list(tags)
        return f"manifest {manifest}"


@pytest.fixture
def orchestrator(settings, source, recorder) -> Orchestrator:
    return Orchestrator(settings, source=source, sink=recorder)


# ---------------------------------------------------------------------------
# Test: construction
# ---------------------------------------------------------------------------


class TestOrchestratorConstruction:
    def test_parallel_defaults_to_settings(self, settings):
        assert Orchestrator(settings).parallel == 2

    def test_parallel_override(self, settings):
        assert Orchestrator(settings, parallel=5).parallel == 5

    def test_parallel_must_be_positive(self, settings):
        with pytest.raises(ValueError):
            Orchestrator(settings, parallel=0)


# ---------------------------------------------------------------------------
# Test: two-phase image publication
# ---------------------------------------------------------------------------


class TestPublishImages:
    """Tags first, then manifests, under one shared budget."""

    @pytest.mark.asyncio
    async def test_publishes_tags_then_manifests(self, orchestrator, make_artifact, options):
        make_artifact(AMD)
        make_artifact(ARM)
        calls = _Calls()

        report = await orchestrator.publish_images([AMD, ARM], options, calls.publish, calls.aggregate)

        assert report.state == RunState.SUCCEEDED
        assert report.succeeded
        assert len(calls.published) == 4
        assert calls.manifests == {
            "example/repo/grafana:9.5.0": [
                "example/repo/grafana-image-tags:9.5.0-amd64",
                "example/repo/grafana-image-tags:9.5.0-arm64",
            ],
            "example/repo/grafana-oss:9.5.0": [
                "example/repo/grafana-oss-image-tags:9.5.0-amd64",
                "example/repo/grafana-oss-image-tags:9.5.0-arm64",
            ],
        }
        assert report.outputs["example/repo/grafana:9.5.0"] == "manifest example/repo/grafana:9.5.0"
        assert len(report.outputs) == 6
        assert [t.to_state for t in report.history] == [
            RunState.DERIVING_TAGS,
            RunState.RUNNING_PHASE1,
            RunState.AGGREGATING_KEYS,
            RunState.RUNNING_PHASE2,
            RunState.SUCCEEDED,
        ]
        assert orchestrator.last_report == report

    @pytest.mark.asyncio
    async def test_both_phases_respect_the_budget(self, settings, source, make_artifact, options):
        names = [f"grafana-9.5.0-{arch}.tar.gz" for arch in ("amd64", "arm64", "armv7", "armv6")]
        for name in names:
            make_artifact(name)
        calls = _Calls()

        await Orchestrator(settings, parallel=3, source=source).publish_images(
            names, options, calls.publish, calls.aggregate
        )
        assert 1 <= calls.peak <= 3

    @pytest.mark.asyncio
    async def test_phase1_failure_builds_no_phase2_tasks(
        self, orchestrator, make_artifact, options, monkeypatch
    ):
        make_artifact(AMD)
        make_artifact(ARM)
        built = []
        original = PublishPlan.manifest_tasks

        def _spy(self, barrier, action):
            built.append(barrier)
            return original(self, barrier, action)

        monkeypatch.setattr(PublishPlan, "manifest_tasks", _spy)
        aggregated = []

        def publish(artifact, tag):
            if tag.endswith("arm64"):
                raise RuntimeError("unauthorized")
            return tag

        def aggregate(manifest, tags):
            aggregated.append(manifest)
            return manifest

        with pytest.raises(TaskError) as excinfo:
            await orchestrator.publish_images([AMD, ARM], options, publish, aggregate)

        assert excinfo.value.task_id.endswith("arm64")
        assert built == []
        assert aggregated == []
        report = orchestrator.last_report
        assert report.state == RunState.PHASE1_FAILED
        assert RunState.RUNNING_PHASE2 not in [t.to_state for t in report.history]
        assert report.failed_task == excinfo.value.task_id
        assert report.outputs == {}

    @pytest.mark.asyncio
    async def test_phase2_failure_is_terminal(self, orchestrator, make_artifact, options):
        make_artifact(AMD)

        def aggregate(manifest, tags):
            raise RuntimeError("manifest push failed")

        with pytest.raises(TaskError, match="manifest push failed"):
            await orchestrator.publish_images([AMD], options, lambda a, t: t, aggregate)

        report = orchestrator.last_report
        assert report.state == RunState.PHASE2_FAILED
        # Published images are reported, not rolled back.
        assert "example/repo/grafana-image-tags:9.5.0-amd64" in report.published

    @pytest.mark.asyncio
    async def test_malformed_name_fails_before_scheduling(self, orchestrator, make_artifact, options, recorder):
        make_artifact("grafana.tar.gz")

        with pytest.raises(InvalidArtifactNameError):
            await orchestrator.publish_images(["grafana.tar.gz"], options, lambda a, t: t, lambda m, t: m)

        assert orchestrator.last_report.state == RunState.INPUT_FAILED
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_missing_artifact_aborts_before_scheduling(self, orchestrator, options, recorder):
        with pytest.raises(ArtifactRetrievalError):
            await orchestrator.publish_images([AMD], options, lambda a, t: t, lambda m, t: m)
        assert orchestrator.last_report.state == RunState.INPUT_FAILED
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_timeout_becomes_acquisition_error(self, settings, source, make_artifact, options):
        make_artifact(AMD)

        async def slow(artifact, tag):
            await asyncio.sleep(0.2)
            return tag

        orchestrator = Orchestrator(settings, parallel=1, source=source)
        with pytest.raises(AcquisitionError):
            await orchestrator.publish_images([AMD], options, slow, lambda m, t: m, timeout=0.05)
        assert orchestrator.last_report.state == RunState.PHASE1_FAILED


# ---------------------------------------------------------------------------
# Test: single-phase flows
# ---------------------------------------------------------------------------


class TestSinglePhaseFlows:
    @pytest.mark.asyncio
    async def test_fan_out_success_is_terminal(self, orchestrator, make_artifact):
        artifact = make_artifact(AMD)
        tasks = [ValidateTask(artifact=artifact, action=lambda a: "valid")]

        report = await orchestrator.fan_out(tasks)

        assert report.outputs == {AMD: "valid"}
        assert [t.to_state for t in report.history] == [
            RunState.DERIVING_TAGS,
            RunState.RUNNING_PHASE1,
            RunState.SUCCEEDED,
        ]

    @pytest.mark.asyncio
    async def test_validate_packages(self, orchestrator, make_artifact, recorder):
        make_artifact(AMD)
        make_artifact(ARM)

        report = await orchestrator.validate_packages([AMD, ARM], lambda a: f"{a.name} ok")

        assert report.outputs == {AMD: f"{AMD} ok", ARM: f"{ARM} ok"}
        assert recorder.task_ids(TaskEventType.COMPLETED) != []

    @pytest.mark.asyncio
    async def test_validate_failure_reports_package(self, orchestrator, make_artifact):
        make_artifact(AMD)

        def action(artifact):
            raise RuntimeError("grafana-server did not start")

        with pytest.raises(TaskError) as excinfo:
            await orchestrator.validate_packages([AMD], action)
        assert excinfo.value.task_id == AMD
        assert orchestrator.last_report.state == RunState.PHASE1_FAILED

    @pytest.mark.asyncio
    async def test_publish_files_joins_destination(self, orchestrator, make_artifact):
        make_artifact("grafana_9.5.0_1_linux_amd64.deb")
        copied = []

        def action(artifact, destination):
            copied.append(destination)
            return destination

        await orchestrator.publish_files(["grafana_9.5.0_1_linux_amd64.deb"], "gs://bucket/main/", action)
        assert copied == ["gs://bucket/main/grafana_9.5.0_1_linux_amd64.deb"]

    @pytest.mark.asyncio
    async def test_publish_files_requires_destination(self, orchestrator, make_artifact):
        make_artifact(AMD)
        with pytest.raises(InputError):
            await orchestrator.publish_files([AMD], "", lambda a, d: d)
        assert orchestrator.last_report.state == RunState.INPUT_FAILED

    @pytest.mark.asyncio
    async def test_publish_single_accepts_one_package(self, orchestrator, make_artifact):
        make_artifact("grafana_9.5.0_1_linux_amd64.deb")
        report = await orchestrator.publish_single(
            ["grafana_9.5.0_1_linux_amd64.deb"], lambda a: "ref:sha256"
        )
        assert report.outputs == {"grafana_9.5.0_1_linux_amd64.deb": "ref:sha256"}

    @pytest.mark.asyncio
    async def test_publish_single_rejects_several_packages(self, orchestrator, make_artifact):
        make_artifact(AMD)
        make_artifact(ARM)
        with pytest.raises(InputError, match="Exactly one package"):
            await orchestrator.publish_single([AMD, ARM], lambda a: "")
        assert orchestrator.last_report.state == RunState.INPUT_FAILED


# ---------------------------------------------------------------------------
# Test: derivation failures and off-loop fetching
# ---------------------------------------------------------------------------


class TestDerivation:
    @pytest.mark.asyncio
    async def test_unexpected_build_error_ends_in_input_failed(self, orchestrator):
        def _broken():
            raise RuntimeError("task catalogue unreadable")
            yield

        with pytest.raises(RuntimeError, match="catalogue"):
            await orchestrator.fan_out(_broken())

        report = orchestrator.last_report
        assert report.state == RunState.INPUT_FAILED
        assert "catalogue" in report.error

    @pytest.mark.asyncio
    async def test_artifacts_are_fetched_off_the_event_loop(self, settings, make_artifact):
        make_artifact(AMD)
        fetch_threads = []

        class _ThreadRecordingSource:
            def fetch(self, name):
                fetch_threads.append(threading.get_ident())
                return make_artifact(name)

        orchestrator = Orchestrator(settings, source=_ThreadRecordingSource())
        await orchestrator.validate_packages([AMD], lambda a: "ok")

        assert fetch_threads
        assert threading.get_ident() not in fetch_threads
