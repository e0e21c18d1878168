#!/usr/bin/env python3
"""
Analyze confidence-based recommendation decisions.

Reads the recommendations JSON lines log and prints acceptance,
research trigger and confidence metrics.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from research_gate.app.services.recommendation_report import main

if __name__ == "__main__":
    sys.exit(main())
