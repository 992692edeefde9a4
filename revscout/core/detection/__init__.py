"""Block detection module for revscout."""

from revscout.core.detection.block_detector import BlockDetector, BlockVerdict

__all__ = ["BlockDetector", "BlockVerdict"]
