"""Global pytest configuration."""

import os

# Pin settings that a local .env could override before any imports
os.environ.setdefault("DISCOUNT_MANDATORY_FESTIVE_IN_BASE", "false")
os.environ.setdefault("RATE_EXPIRY_WARNING_DAYS", "14")
