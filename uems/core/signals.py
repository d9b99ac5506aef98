"""
Domain signals passed between services.

The event lifecycle announces what happened; other services (the user
directory, for role promotion) subscribe without the lifecycle code knowing
about them.
"""

from blinker import Namespace

_signals = Namespace()

# Sent inside the approval transaction.
# kwargs: conn, event_id, creator_id
event_approved = _signals.signal("event-approved")
