import sys
import os

import pytest

# Add backend/ to path so tests can import backend modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

# Add scripts/ to path so tests can import script modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))

COURSES_CSV = os.path.join(os.path.dirname(__file__), "..", "data", "courses.csv")


@pytest.fixture
def catalog():
    """Fresh catalog from the shipped CSV (each test gets its own overlay)."""
    from data_loader import load_data
    return load_data(COURSES_CSV)["catalog"]


@pytest.fixture
def state():
    """Default 8-semester plan: Fall 2025 .. Spring 2029, Spring 2026 current."""
    from schedule import default_state
    return default_state()
