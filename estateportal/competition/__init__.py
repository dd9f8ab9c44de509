"""Competition blueprint."""

from flask import Blueprint

bp = Blueprint("competition", __name__, url_prefix="/competitions")

from . import routes  # noqa: E402, F401
from .bracket import BracketBuilder  # noqa: E402
from .services import CompetitionService  # noqa: E402

__all__ = ["BracketBuilder", "CompetitionService", "routes"]
