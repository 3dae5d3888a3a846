from tempest.metrics import compute_summary
from tempest.models import StatusSnapshot


def _snapshot(**overrides):
    data = dict(
        is_running=False,
        total_requests=40,
        success_requests=30,
        failed_requests=10,
        current_rps=4.0,
        errors={"Connection refused": 6, "TimeoutError": 2, "Bad gateway": 2},
        start_time=1_700_000_000.0,
        elapsed=10,
        last_response_code=200,
        recent_logs=(),
    )
    data.update(overrides)
    return StatusSnapshot(**data)


def test_summary_rates():
    summary = compute_summary(_snapshot())
    assert summary.error_rate == 0.25
    assert summary.success_rate == 0.75
    assert summary.mean_rps == 4.0
    assert summary.top_errors[0] == ("Connection refused", 6)
    assert summary.top_errors[1:] == [("Bad gateway", 2), ("TimeoutError", 2)]


def test_summary_of_empty_run():
    summary = compute_summary(
        _snapshot(total_requests=0, success_requests=0, failed_requests=0, errors={}, elapsed=0)
    )
    assert summary.error_rate == 0.0
    assert summary.mean_rps == 0.0
    assert summary.top_errors == []


def test_metrics_callback_receives_dict():
    seen = []
    compute_summary(_snapshot(), metrics_callback=seen.append)
    assert seen[0]["total"] == 40
    assert seen[0]["failed"] == 10
