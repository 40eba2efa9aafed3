from __future__ import annotations

import httpx
import pytest

from nvrmon.adapters.appliance.status_client import JobStatusClient, StatusErrorKind
from nvrmon.core.reconcile import reconcile
from nvrmon.core.state import JobStatus, SubJobStatus
from nvrmon.handlers.console import fmt_progress_line, fmt_sub_job_line


def _client(handler) -> JobStatusClient:
    return JobStatusClient("http://nvr.local", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_ok_parses_payload():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        return httpx.Response(
            200,
            json={
                "status": "IN_PROGRESS",
                "completedCount": 1,
                "totalCount": 2,
                "activeCount": 1,
                "subJobs": [
                    {"subJobId": "s1", "status": "COMPLETED", "resultUri": "/files/s1.mp4"},
                    {"subJobId": "s2", "status": "ACTIVE", "progressPercent": 55},
                ],
            },
        )

    cli = _client(handler)
    res = await cli.fetch_status("job 1/a")
    await cli.aclose()

    assert res.ok and res.job_id == "job 1/a"
    assert seen["url"] == "http://nvr.local/status/job%201%2Fa"
    assert res.status.status is JobStatus.IN_PROGRESS
    assert res.status.sub_jobs[1].status is SubJobStatus.ACTIVE


@pytest.mark.asyncio
async def test_appliance_batch_field_names_are_accepted():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "batchId": "b-1",
                "status": "in_progress",
                "total": 2,
                "completed": 1,
                "inProgress": 1,
                "queued": 0,
                "failed": 0,
                "jobs": [
                    {"jobId": "j1", "status": "COMPLETED", "fileName": "a.mp4", "downloadUrl": "/d/a"},
                    {"jobId": "j2", "status": "DOWNLOADING", "fileName": "b.mp4"},
                ],
            },
        )

    res = await _client(handler).fetch_status("b-1")
    assert res.ok
    st = res.status
    assert (st.completed_count, st.total_count, st.active_count) == (1, 2, 1)
    assert st.sub_jobs[0].result_uri == "/d/a"
    assert st.sub_jobs[1].status is SubJobStatus.ACTIVE
    assert st.sub_jobs[1].name == "b.mp4"


@pytest.mark.asyncio
async def test_404_is_not_found():
    res = await _client(lambda r: httpx.Response(404, json={"message": "nope"})).fetch_status("x")
    assert not res.ok
    assert res.error.kind is StatusErrorKind.NOT_FOUND
    assert res.error.http_status == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [500, 502, 503, 401])
async def test_other_http_errors_are_transient(code):
    res = await _client(lambda r: httpx.Response(code)).fetch_status("x")
    assert res.error.kind is StatusErrorKind.TRANSIENT
    assert res.error.http_status == code


@pytest.mark.asyncio
async def test_network_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    res = await _client(handler).fetch_status("x")
    assert res.error.kind is StatusErrorKind.TRANSIENT


@pytest.mark.asyncio
async def test_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    res = await _client(handler).fetch_status("x")
    assert res.error.kind is StatusErrorKind.TRANSIENT


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"status": "EXPLODED", "completedCount": 0, "totalCount": 1}),
        httpx.Response(200, json={"status": "IN_PROGRESS", "completedCount": 4, "totalCount": 3}),
        httpx.Response(
            200,
            json={
                "status": "IN_PROGRESS",
                "completedCount": 0,
                "totalCount": 1,
                "subJobs": [{"subJobId": "a", "status": "ACTIVE", "progressPercent": 140}],
            },
        ),
        httpx.Response(
            200,
            json={
                "status": "IN_PROGRESS",
                "completedCount": 0,
                "totalCount": 1,
                "subJobs": [{"subJobId": "a", "status": "QUEUED", "resultUri": "/too/early"}],
            },
        ),
    ],
)
async def test_invalid_payloads_are_malformed(response):
    res = await _client(lambda r: response).fetch_status("x")
    assert res.error.kind is StatusErrorKind.MALFORMED


@pytest.mark.asyncio
async def test_empty_job_id_is_rejected():
    with pytest.raises(ValueError):
        await _client(lambda r: httpx.Response(200)).fetch_status("")


@pytest.mark.asyncio
async def test_appliance_download_details_reach_the_model():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "batchId": "b-2",
                "status": "IN_PROGRESS",
                "total": 3,
                "completed": 1,
                "inProgress": 1,
                "failed": 1,
                "jobs": [
                    {
                        "jobId": "j1",
                        "status": "COMPLETED",
                        "fileName": "a.mp4",
                        "downloadUrl": "/api/recordings/download/j1/file",
                        "actualFileSize": "249 MB",
                        "message": "Download completed successfully",
                        "downloadSpeed": 0.0,
                    },
                    {
                        "jobId": "j2",
                        "status": "CANCELLED",
                        "message": "Download cancelled",
                        "downloadSpeed": 0.0,
                    },
                    {
                        "jobId": "j3",
                        "status": "DOWNLOADING",
                        "fileName": "b.mp4",
                        "progressPercent": 45,
                        "downloadSpeed": 2.5,
                        "downloadedSize": "112 MB",
                        "totalSize": "249 MB",
                        "eta": "2m 30s",
                        "message": "Downloading...",
                    },
                ],
            },
        )

    res = await _client(handler).fetch_status("b-2")
    assert res.ok
    model = reconcile(res.status, 0, 0)

    item = model.active_item
    assert item.label == "b.mp4" and item.percent == 45
    assert item.rate == 312_500  # 2.5 Mbps
    assert item.rate_label == "305.2 KiB/s"
    assert item.eta_label == "2m 30s"
    assert item.size_label == "112 MB / 249 MB"

    lines = [fmt_sub_job_line(j) for j in model.sub_jobs]
    assert lines[0] == "  ✓ a.mp4 (249 MB) -> /api/recordings/download/j1/file"
    assert lines[1] == "  ✗ j2: Download cancelled"
    assert "(112 MB / 249 MB) 305.2 KiB/s ETA 2m 30s" in fmt_progress_line(model)
