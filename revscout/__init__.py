"""revscout: resilient product review retrieval.

Retries, block detection, session rotation and an asynchronous scrape-job client.
"""

__version__ = "0.1.0"
