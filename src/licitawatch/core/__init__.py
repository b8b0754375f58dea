"""Core pipeline: fetching, extraction, classification and orchestration."""
