"""Root pytest configuration for all tests."""

import logging

# The atlassian client logs HTTP failures at ERROR level, which the unit
# tests trigger on purpose.
logging.getLogger("atlassian").setLevel(logging.WARNING)
