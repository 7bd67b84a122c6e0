#!/usr/bin/env python3
"""Generate JWT tokens for the demo accounts, for manual API testing."""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.auth import create_access_token

# Seeded supervisor
supervisor_token = create_access_token("gestor-1", roles=["SUPERVISOR"], email="gestor@eco.com")
print(f"Supervisor Token:\n{supervisor_token}\n")

# Seeded technician #1
technician_token = create_access_token("tech-1", roles=["TECHNICIAN"], email="1@1")
print(f"Technician Token:\n{technician_token}")
