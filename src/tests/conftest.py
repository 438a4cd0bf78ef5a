"""Shared test configuration."""

import os

# The app refuses to start without a signing secret
os.environ.setdefault("MINERR_AUTH_JWT_SECRET", "test-secret")
