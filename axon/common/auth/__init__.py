"""
Authentication Boundary

Credential verification lives with the external session provider; this
package only resolves the authenticated user id for a request.
"""

from axon.common.auth.dependencies import get_current_user_id

__all__ = ["get_current_user_id"]
