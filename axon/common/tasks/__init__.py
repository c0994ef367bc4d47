"""
Follow-up Tasks

Best-effort side effects that run after a request has been answered.
"""

from axon.common.tasks.followup import FollowUpTaskQueue, TaskFailure

__all__ = ["FollowUpTaskQueue", "TaskFailure"]
