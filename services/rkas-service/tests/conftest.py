"""Pytest configuration for rkas-service tests.

Ensures the service's own src directory takes precedence in sys.path and that
the `shared` package under services/ is importable.
"""

import sys
from pathlib import Path

SERVICES_ROOT = Path(__file__).resolve().parents[2]

# Ensure this service's src is first in sys.path
SERVICE_SRC = Path(__file__).resolve().parents[1] / "src"
if str(SERVICE_SRC) not in sys.path:
    sys.path.insert(0, str(SERVICE_SRC))

if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(1, str(SERVICES_ROOT))
