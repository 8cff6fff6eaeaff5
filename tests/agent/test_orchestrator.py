"""End-to-end runs of the evaluation pipeline with in-process collaborators."""

import asyncio

import pytest
import pytest_asyncio

from muve.agents.evaluation.graph import NO_SUMMARY
from muve.agents.orchestrator import SETUP_FAILURE_SUMMARY, UNEXPECTED_FAILURE_SUMMARY
from muve.db.store import EvaluationStore
from muve.errors import JobAlreadyRunningError, PageRenderError, RecordNotFoundError
from muve.services.geocoder import Coordinates
from tests.fakes import (
    FakeGeoSources,
    FakeGeocoder,
    FakeImageSource,
    FakeLLM,
    build_orchestrator,
    make_store,
)

ADDRESS = "123 Example St, Springfield"
LISTING = "https://www.zillow.com/homedetails/123-Example-St/1_zpid/"
PHOTOS = [f"https://photos.zillowstatic.com/fp/{i}.jpg" for i in range(1, 4)]


@pytest_asyncio.fixture
async def store(tmp_path):
    store, engine = await make_store(tmp_path)
    yield store
    await engine.dispose()


def _source(**extra):
    return FakeImageSource(images={LISTING: PHOTOS}, listings={ADDRESS: LISTING}, **extra)


async def _run(orchestrator, **submit):
    submit.setdefault("user_needs", "I use a wheelchair and cannot manage steps.")
    job_id = await orchestrator.submit(**submit)
    await orchestrator.wait(job_id)
    return job_id


# ── Happy paths ──────────────────────────────────────────

@pytest.mark.asyncio
async def test_address_with_no_barriers_completes(store):
    orchestrator = build_orchestrator(store, image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.subject == ADDRESS
    assert record.source_url == LISTING
    assert record.image_urls == PHOTOS
    assert len(record.image_results) == 3
    assert all(r.triggers is None for r in record.image_results)
    assert record.specialty_results is None
    assert record.final_score == 96
    assert record.final_summary == "No barriers were visible in the photos."
    assert "- narrow doorway" in record.checklist


@pytest.mark.asyncio
async def test_url_with_one_barrier(store):
    llm = FakeLLM(
        triggers={PHOTOS[1]: "narrow doorway"},
        score_response='{"score": 71, "summary": "One doorway looks too narrow for a wheelchair."}',
    )
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source())
    job_id = await _run(orchestrator, listing_url=LISTING)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.subject == LISTING
    assert [r.triggers for r in record.image_results] == [None, ["narrow doorway"], None]
    assert record.image_results[1].locator == [120.0, 80.0]
    assert record.final_score == 71
    assert record.final_summary.strip()

    score_prompt = llm.chat_prompts[-1]
    assert "- narrow doorway" in score_prompt


@pytest.mark.asyncio
async def test_caller_url_without_photos_falls_back_to_address_search(store):
    source = _source()
    source.images["https://www.redfin.com/empty"] = []
    orchestrator = build_orchestrator(store, image_source=source)
    job_id = await _run(orchestrator, address=ADDRESS, listing_url="https://www.redfin.com/empty")

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.source_url == LISTING
    assert source.searches == [ADDRESS]


@pytest.mark.asyncio
async def test_vision_failure_in_one_batch_still_completes(store):
    llm = FakeLLM(failing_urls={PHOTOS[0]})
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert [r.image_url for r in record.image_results] == PHOTOS[1:]


# ── Setup failures ───────────────────────────────────────

@pytest.mark.asyncio
async def test_no_listing_found_ends_in_error(store):
    llm = FakeLLM()
    orchestrator = build_orchestrator(store, llm=llm, image_source=FakeImageSource())
    job_id = await _run(orchestrator, address="1 Nowhere Lane")

    record = await store.get(job_id)
    assert record.status == "error"
    assert record.final_summary == SETUP_FAILURE_SUMMARY
    assert record.final_score is None
    assert record.image_results is None
    assert llm.vision_calls == []


@pytest.mark.asyncio
async def test_page_render_failure_ends_in_error(store):
    orchestrator = build_orchestrator(store, image_source=_source(error=PageRenderError("timed out")))
    job_id = await _run(orchestrator, listing_url=LISTING)

    record = await store.get(job_id)
    assert record.status == "error"
    assert record.final_summary == SETUP_FAILURE_SUMMARY


@pytest.mark.asyncio
async def test_checklist_failure_ends_in_error(store):
    llm = FakeLLM(checklist_error=RuntimeError("model unavailable"))
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "error"
    assert record.checklist is None
    assert record.final_summary == SETUP_FAILURE_SUMMARY
    assert "photos" not in record.final_summary


@pytest.mark.asyncio
async def test_blank_checklist_ends_in_error(store):
    orchestrator = build_orchestrator(store, llm=FakeLLM(checklist="  \n"), image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)
    assert (await store.get(job_id)).status == "error"


# ── Neighbourhood checks ─────────────────────────────────

@pytest.mark.asyncio
async def test_failed_check_is_left_out(store):
    llm = FakeLLM(checklist="- steps at entrance\nSPECIALTY_CHECKS: elevation, pollution")
    geocoder = FakeGeocoder()
    orchestrator = build_orchestrator(
        store, llm=llm, image_source=_source(), geocoder=geocoder,
        geo_sources=FakeGeoSources(failing={"elevation"}),
    )
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert [r.category for r in record.specialty_results] == ["Noise & Light Pollution"]
    assert record.specialty_results[0].findings
    assert geocoder.calls == [ADDRESS]
    assert "Noise & Light Pollution:" in llm.chat_prompts[-1]


@pytest.mark.asyncio
async def test_address_is_geocoded_once_for_all_checks(store):
    llm = FakeLLM(
        checklist="- steps\nSPECIALTY_CHECKS: elevation, proximity, pollution, lighting, sidewalk, air_quality, emergency",
    )
    geocoder = FakeGeocoder()
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source(), geocoder=geocoder)
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert geocoder.calls == [ADDRESS]
    assert len(record.specialty_results) == 7


@pytest.mark.asyncio
async def test_every_check_failing_leaves_empty_results(store):
    llm = FakeLLM(checklist="- steps\nSPECIALTY_CHECKS: elevation, air_quality")
    orchestrator = build_orchestrator(
        store, llm=llm, image_source=_source(),
        geo_sources=FakeGeoSources(failing={"elevation", "air_quality"}),
    )
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.specialty_results == []


@pytest.mark.asyncio
async def test_geocoding_failure_skips_checks(store):
    llm = FakeLLM(checklist="- steps\nSPECIALTY_CHECKS: lighting")
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source(), geocoder=FakeGeocoder(coords=None))
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.specialty_results is None


@pytest.mark.asyncio
async def test_url_only_job_skips_checks(store):
    llm = FakeLLM(checklist="- steps\nSPECIALTY_CHECKS: lighting")
    geocoder = FakeGeocoder(Coordinates(1.0, 2.0))
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source(), geocoder=geocoder)
    job_id = await _run(orchestrator, listing_url=LISTING)

    assert (await store.get(job_id)).specialty_results is None
    assert geocoder.calls == []


# ── Scoring ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_unparseable_score_completes_with_raw_summary(store):
    raw = "This home looks fine, maybe 80 out of 100."
    orchestrator = build_orchestrator(store, llm=FakeLLM(score_response=raw), image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.final_score is None
    assert record.final_summary == raw


@pytest.mark.asyncio
async def test_empty_score_response_gets_placeholder_summary(store):
    orchestrator = build_orchestrator(store, llm=FakeLLM(score_response=""), image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert record.final_summary == NO_SUMMARY


@pytest.mark.asyncio
async def test_scoring_call_failure_ends_in_error(store):
    class BrokenScorer(FakeLLM):
        async def chat(self, prompt):
            if "Rate how accessible" in prompt:
                raise RuntimeError("rate limited")
            return await super().chat(prompt)

    orchestrator = build_orchestrator(store, llm=BrokenScorer(), image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    record = await store.get(job_id)
    assert record.status == "error"
    assert record.final_summary == UNEXPECTED_FAILURE_SUMMARY
    assert len(record.image_results) == 3


# ── Lifecycle ────────────────────────────────────────────

class RecordingStore(EvaluationStore):
    """Takes a snapshot after every write, as a polling client would see it."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.snapshots = []

    async def update(self, evaluation_id, **fields):
        record = await super().update(evaluation_id, **fields)
        self.snapshots.append(record)
        return record

    async def append_image_results(self, evaluation_id, results):
        record = await super().append_image_results(evaluation_id, results)
        self.snapshots.append(record)
        return record


@pytest.mark.asyncio
async def test_progress_is_monotonic(store):
    recording = RecordingStore(store._session_factory)
    orchestrator = build_orchestrator(recording, image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)

    statuses = [s.status for s in recording.snapshots]
    assert statuses[-1] == "completed"
    assert all(s == "processing" for s in statuses[:-1])

    counts = [len(s.image_results) for s in recording.snapshots if s.image_results is not None]
    assert counts == sorted(counts)
    assert [1, 2, 3] == [c for c in counts if c][:3]
    assert (await store.get(job_id)).status == "completed"


@pytest.mark.asyncio
async def test_submit_returns_before_the_run_finishes(store):
    orchestrator = build_orchestrator(store, image_source=_source())
    job_id = await orchestrator.submit("low vision", address=ADDRESS)
    assert orchestrator.registry.is_running(job_id)
    await orchestrator.wait(job_id)
    assert not orchestrator.registry.is_running(job_id)


@pytest.mark.asyncio
async def test_finished_job_is_not_run_again(store):
    llm = FakeLLM()
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source())
    job_id = await _run(orchestrator, address=ADDRESS)
    calls = len(llm.chat_prompts)

    await orchestrator.run(job_id)
    assert len(llm.chat_prompts) == calls
    assert (await store.get(job_id)).status == "completed"


@pytest.mark.asyncio
async def test_submit_requires_a_subject(store):
    orchestrator = build_orchestrator(store)
    with pytest.raises(ValueError):
        await orchestrator.submit("low vision")


@pytest.mark.asyncio
async def test_run_refuses_a_job_already_in_flight(store):
    llm = FakeLLM()
    orchestrator = build_orchestrator(store, llm=llm, image_source=_source())
    job_id = await orchestrator.submit("I use a wheelchair.", address=ADDRESS)
    await asyncio.sleep(0)

    with pytest.raises(JobAlreadyRunningError):
        await orchestrator.run(job_id)
    await orchestrator.wait(job_id)

    record = await store.get(job_id)
    assert record.status == "completed"
    assert len(record.image_results) == 3
    assert len([p for p in llm.chat_prompts if "Their needs, in their own words" in p]) == 1
    assert [url for call in llm.vision_calls for url in call] == PHOTOS


@pytest.mark.asyncio
async def test_failed_run_releases_its_claim(store):
    orchestrator = build_orchestrator(store)
    for _ in range(2):
        with pytest.raises(RecordNotFoundError):
            await orchestrator.run("01HZZZZZZZZZZZZZZZZZZZZZZZ")
