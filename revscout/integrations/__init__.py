"""Third-party service integrations for revscout."""
