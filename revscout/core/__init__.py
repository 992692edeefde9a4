"""Core resilience layer for revscout."""
