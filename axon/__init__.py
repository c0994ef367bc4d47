"""
Axon Brain-Training Backend

This package provides the server side of the Axon brain-training platform.

The platform features:
1. Word selection with recency exclusion and graceful filter relaxation
2. Session scoring with accuracy and performance tiers
3. Per-user progress aggregation (best/average score, daily streaks)
4. A phase state machine driving the word-memory exercise
"""

__version__ = "0.1.0"
