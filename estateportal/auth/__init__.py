"""Authentication helpers: session guards and permission objects."""

from .decorators import login_required
from .permissions import Permissions

__all__ = ["Permissions", "login_required"]
