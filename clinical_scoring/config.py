"""
Clinical Scoring — Configuration
================================
Runtime settings for the ambient stack (logging only).
Loads overrides from a project-level .env file when present.

Clinical weights, thresholds and override rules are NOT configurable;
they live as module-level constants in the profile rule modules.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PACKAGE_DIR = Path(__file__).resolve().parent                  # clinical_scoring/
PROJECT_ROOT = PACKAGE_DIR.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# ── Logging ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("CLINICAL_SCORING_LOG_LEVEL", "WARNING")
LOG_FILE: str = os.getenv("CLINICAL_SCORING_LOG_FILE", "")          # empty = console only
LOG_COLOR: bool = os.getenv("CLINICAL_SCORING_LOG_COLOR", "1").lower() not in ("0", "false", "no")

# Root of the logger namespace configured by utils.logging
LOGGER_NAMESPACE = "clinical_scoring"
