import logging
from .models import MetricsCallback, RunSummary, StatusSnapshot

logger = logging.getLogger(__name__)


def compute_summary(
    snapshot: StatusSnapshot,
    metrics_callback: MetricsCallback | None = None,
    top_n: int = 5,
) -> RunSummary:
    total = snapshot.total_requests
    success = snapshot.success_requests
    failed = snapshot.failed_requests
    settled = success + failed
    logger.debug(f"Computing summary: total={total}, success={success}, failed={failed}")

    if not settled:
        error_rate = 0.0
        success_rate = 0.0
    else:
        error_rate = failed / settled
        success_rate = success / settled

    mean_rps = total / snapshot.elapsed if snapshot.elapsed > 0 else 0.0
    top_errors = sorted(snapshot.errors.items(), key=lambda kv: (-kv[1], kv[0]))[:top_n]

    summary_dict = {
        "total": total,
        "success": success,
        "failed": failed,
        "error_rate": error_rate,
        "success_rate": success_rate,
        "mean_rps": mean_rps,
        "elapsed": snapshot.elapsed,
        "last_response_code": snapshot.last_response_code,
        "top_errors": top_errors,
    }

    if metrics_callback:
        metrics_callback(dict(summary_dict))

    if total and settled < total:
        logger.warning(f"{total - settled} requests had not settled when the summary was taken")

    logger.info(
        f"Summary computed: total={total}, success={success}, failed={failed}, "
        f"mean_rps={mean_rps:.2f}, error_rate={error_rate * 100:.1f}%"
    )
    return RunSummary(**summary_dict)
