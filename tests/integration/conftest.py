"""Pytest configuration and fixtures for integration tests.

Loads .env from the project root and skips the whole directory when no
OPENROUTER_API_KEY is configured. These tests call live backends and consume
free-tier quota.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env before test collection so the config module sees the key."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests require a valid OPENROUTER_API_KEY")
    print(f"Environment loaded from: {env_path}")
    print("Optional: FRIDGE_IMAGE_URL enables the live detection test")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip integration tests if the API key is not configured."""
    if not os.getenv("OPENROUTER_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API key: OPENROUTER_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture(scope="session")
def fridge_image_url():
    url = os.getenv("FRIDGE_IMAGE_URL")
    if not url:
        pytest.skip("FRIDGE_IMAGE_URL not set")
    return url
