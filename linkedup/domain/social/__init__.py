"""Social domain exports."""

from . import service, sockets  # noqa: F401
from .models import MatchOutcome, MatchSummary  # noqa: F401
from .service import RelationshipRepository  # noqa: F401
