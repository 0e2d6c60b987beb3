import asyncio
import json

from app.models import Job, JobStatus
from app.services.status_stream import format_event, job_event_stream


def decode(frame):
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


async def collect(stream):
    return [decode(frame) async for frame in stream]


async def finish(job_store, job_id, status=JobStatus.COMPLETED):
    await job_store.update_job(job_id, status=JobStatus.PROCESSING, progress=50)
    await job_store.update_job(job_id, status=status, progress=100 if status == JobStatus.COMPLETED else 0)


def test_format_event_uses_camel_case(website_request):
    job = Job(id="job_1", input=website_request)

    payload = decode(format_event(job))

    assert payload["id"] == "job_1"
    assert payload["status"] == "queued"
    assert "createdAt" in payload
    assert payload["input"]["companyName"] == "Acme Bistro"
    assert decode(format_event({"error": "Job not found"})) == {"error": "Job not found"}


async def test_terminal_job_sends_one_event(job_store, website_request):
    job = await job_store.create_job(website_request)
    await finish(job_store, job.id)

    events = await collect(job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=1))

    assert len(events) == 1
    assert events[0]["status"] == "completed"
    assert events[0]["progress"] == 100


async def test_stream_follows_job_until_it_finishes(job_store, website_request):
    job = await job_store.create_job(website_request)

    async def run_job():
        await asyncio.sleep(0.03)
        await finish(job_store, job.id, status=JobStatus.FAILED)

    worker = asyncio.create_task(run_job())
    events = await collect(job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=5))
    await worker

    assert events[0]["status"] == "queued"
    assert events[-1]["status"] == "failed"
    assert all(event["status"] != "failed" for event in events[:-1])


async def test_missing_job_sends_error_event(job_store):
    events = await collect(job_event_stream(job_store, "job_missing", poll_interval=0.01, max_duration=1))
    assert events == [{"error": "Job not found"}]


async def test_job_removed_while_streaming(job_store, website_request):
    job = await job_store.create_job(website_request)
    stream = job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=1)

    first = decode(await stream.__anext__())
    await job_store.delete_job(job.id)
    rest = [decode(frame) async for frame in stream]

    assert first["id"] == job.id
    assert rest == [{"error": "Job not found"}]


async def test_store_failure_sends_polling_error(job_store, website_request):
    job = await job_store.create_job(website_request)
    stream = job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=1)
    await stream.__anext__()

    async def broken_get_job(job_id):
        raise RuntimeError("store offline")

    job_store.get_job = broken_get_job
    rest = [decode(frame) async for frame in stream]

    assert rest == [{"error": "Error polling job status"}]


async def test_stream_stops_when_client_disconnects(job_store, website_request):
    job = await job_store.create_job(website_request)

    async def gone():
        return True

    events = await collect(
        job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=5, is_disconnected=gone)
    )

    assert [event["status"] for event in events] == ["queued"]


async def test_stream_stops_at_max_duration(job_store, website_request):
    job = await job_store.create_job(website_request)

    events = await collect(job_event_stream(job_store, job.id, poll_interval=0.01, max_duration=0.05))

    assert len(events) >= 2
    assert all(event["status"] == "queued" for event in events)
