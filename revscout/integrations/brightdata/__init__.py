"""BrightData scrape-job integration for revscout."""

from revscout.integrations.brightdata.client import AsyncJobClient
from revscout.integrations.brightdata.endpoints import JobEndpoints, build_target
from revscout.integrations.brightdata.transform import transform_snapshot

__all__ = ["AsyncJobClient", "JobEndpoints", "build_target", "transform_snapshot"]
