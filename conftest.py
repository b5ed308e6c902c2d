"""Global pytest configuration."""

import os

# Point the API client at the in-process reference API before settings are cached
os.environ.setdefault("TIMELINE_API_BASE_URL", "http://testserver")
