"""
Named constants for the enrichment setup engine.

These are not read from the environment; tests and callers
import them by name.
"""

import re

# Maximum number of enrichment fields that can be selected at once
MAX_SELECTED_FIELDS = 10

# Detection confidence (0-100) at which the email column is pre-selected
EMAIL_CONFIDENCE_THRESHOLD = 50

# Columns scoring below this are not reported as email columns at all
MIN_DETECTION_SCORE = 10

# Rows inspected per column during email detection
SAMPLE_SIZE = 100

# local-part@domain.tld
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Free/consumer providers; addresses on these rarely lead to company data
PERSONAL_EMAIL_DOMAINS = frozenset([
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
])

# Keys the downstream enrichment executor needs before a run can be set up
REQUIRED_CREDENTIALS = ("FIRECRAWL_API_KEY", "OPENAI_API_KEY")
