"""
Pytest configuration for shared library tests
"""
import sys
from pathlib import Path

# Compute and add project paths BEFORE any project imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
LIBS_DIR = PROJECT_ROOT / "libs"
COMMON_PY_DIR = LIBS_DIR / "common-py"
CONTRACTS_DIR = LIBS_DIR / "contracts"


def _early_sys_path_setup():
    """Ensure project-specific paths are available before project imports."""
    for p in (COMMON_PY_DIR, CONTRACTS_DIR):
        ps = str(p)
        if ps not in sys.path:
            sys.path.insert(0, ps)


_early_sys_path_setup()
