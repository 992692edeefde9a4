"""Wire layouts for asynchronous scrape-job services.

Two layouts ship: the generic trigger/status/result layout and the BrightData
dataset layout (trigger, progress, snapshot).
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from revscout.models.reviews import ScrapeOptions

AMAZON_BASE_URL = "https://www.amazon.com"

# BrightData caps snapshot batches at 50 records
MAX_SNAPSHOT_BATCH = 50


def build_target(target_id: str, options: ScrapeOptions) -> Dict[str, Any]:
    """Site-specific job parameters for one product."""
    return {
        "url": f"{AMAZON_BASE_URL}/dp/{target_id}",
        "country": options.country,
        "reviews_count": options.reviews_count,
        "sort_by": "recent" if options.sort_by == "most_recent" else options.sort_by,
    }


@dataclass(frozen=True)
class JobEndpoints:
    """Paths and field names of a trigger -> poll -> fetch job service.

    ``status_path`` and ``result_path`` are formatted with ``job_id``.
    """

    trigger_path: str
    status_path: str
    result_path: str
    job_id_field: str = "job_id"
    trigger_params: Dict[str, str] = field(default_factory=dict)
    dataset_envelope: bool = False

    @classmethod
    def generic(cls) -> "JobEndpoints":
        return cls(
            trigger_path="/jobs",
            status_path="/jobs/{job_id}/status",
            result_path="/jobs/{job_id}/result",
        )

    @classmethod
    def brightdata(cls, dataset_id: str) -> "JobEndpoints":
        """BrightData dataset API layout.

        Raises:
            ValueError: If dataset_id is empty
        """
        if not dataset_id:
            raise ValueError("BrightData dataset ID is required")
        return cls(
            trigger_path="/datasets/v3/trigger",
            status_path="/datasets/v3/progress/{job_id}",
            result_path="/datasets/v3/snapshot/{job_id}",
            job_id_field="snapshot_id",
            trigger_params={"dataset_id": dataset_id, "include_errors": "true"},
            dataset_envelope=True,
        )

    def trigger_body(self, target: Dict[str, Any]) -> Dict[str, Any]:
        if self.dataset_envelope:
            return {"deliver": {"type": "api_pull"}, "input": [target]}
        return {"target": target}

    def result_params(self, options: ScrapeOptions) -> Dict[str, Any]:
        if not self.dataset_envelope:
            return {}
        return {
            "format": "json",
            "compress": "false",
            "batch_size": min(options.reviews_count, MAX_SNAPSHOT_BATCH),
        }

    def status_url(self, job_id: str) -> str:
        return self.status_path.format(job_id=job_id)

    def result_url(self, job_id: str) -> str:
        return self.result_path.format(job_id=job_id)
