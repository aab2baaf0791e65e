import os
import sys
from pathlib import Path


# Ensure `backend/` is on sys.path so tests can import local modules
# like `geo.*`, `routeguide.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

# Telemetry tests opt back in with monkeypatch; everything else stays off disk.
os.environ.setdefault("ROUTEGUIDE_TELEMETRY", "0")
