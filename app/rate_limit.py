"""
Rate limiting configuration using slowapi.

HTTP-level throttling per client IP, independent of the per-account
ACC-011 action limit the rule engine enforces:
  • booking – 20/min (booking creation, cancellation, no-shows)
  • admin   – 30/min (rule, policy and court changes)
  • default – 60/min (everything else)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])

# Named rate strings for use in @limiter.limit() decorators
BOOKING = "20/minute"    # booking mutations
ADMIN = "30/minute"      # facility configuration
DEFAULT = "60/minute"    # availability, evaluations, reads
