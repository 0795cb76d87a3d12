"""Public API for the pathology lab authorization framework.

Views, services and management commands go through this package instead of
reaching into the role table or the action policy engine directly.
"""

from pathlab_authz.api.data import *
from pathlab_authz.api.events import *
from pathlab_authz.api.permissions import *
from pathlab_authz.api.roles import *
from pathlab_authz.api.tenants import *
