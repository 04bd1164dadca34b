#!/usr/bin/env python3
"""Run a Demoblaze load test from a checkout without installing.

Usage:
    ./bin/run-test.py --config configs/mix_auth_basic.yaml
    ./bin/run-test.py --config configs/smoke.yaml --verbose
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from runner.orchestrator import main  # noqa: E402

if __name__ == '__main__':
    main()
