"""
Signals sent by the authorization framework.

``authorization_decided`` is sent once for every authorization check with the
keyword arguments ``event`` (a ``DecisionEvent``) and ``decision`` (the
``AuthorizationDecision``). Receivers must not mutate either.
"""

from django.dispatch import Signal

authorization_decided = Signal()
