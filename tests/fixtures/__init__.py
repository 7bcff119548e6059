"""Test fixtures for docscribe.

Sample Projects:
- sample_project: a small package with undocumented, partially documented
  and stale symbols spread over three modules
"""

from pathlib import Path

FIXTURES_DIR = Path(__file__).parent

SAMPLE_PROJECT_PATH = FIXTURES_DIR / "sample_project"
